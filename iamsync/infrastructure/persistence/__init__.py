"""Durable registry persistence (SQLAlchemy async, PostgreSQL)."""

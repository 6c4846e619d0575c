"""Core: configuration, constants, wiring, lifespan and exception handlers."""

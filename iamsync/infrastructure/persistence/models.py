"""Registry ORM models: principal, principal_group and group membership."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from iamsync.infrastructure.persistence.database import Base


class PrincipalModel(Base):
    """Principal. Table: principal. Name is the primary key (immutable)."""

    __tablename__ = "principal"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    contact_email: Mapped[str | None] = mapped_column(String, nullable=True)
    password_reset_required: Mapped[bool] = mapped_column(Boolean, nullable=False)
    login_secret_id: Mapped[str | None] = mapped_column(String, nullable=True)
    login_secret_version: Mapped[str | None] = mapped_column(String, nullable=True)
    login_password_hash: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class GroupModel(Base):
    """Group with its allow-rules as JSON [{actions: [...], resources: [...]}]."""

    __tablename__ = "principal_group"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    rules: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)


class MembershipModel(Base):
    """Principal-group membership. Table: group_membership."""

    __tablename__ = "group_membership"

    principal_name: Mapped[str] = mapped_column(
        String(64), ForeignKey("principal.name", ondelete="CASCADE"), primary_key=True
    )
    group_name: Mapped[str] = mapped_column(
        String(64), ForeignKey("principal_group.name", ondelete="CASCADE"), primary_key=True
    )

"""Persistent remember-me token model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from warden.extensions import db


class RememberMeToken(db.Model):
    __tablename__ = "persistent_logins"
    __table_args__ = (db.Index("ix_persistent_logins_username", "username"),)

    series: Mapped[str] = mapped_column(db.String(64), primary_key=True)
    username: Mapped[str] = mapped_column(db.String(64), nullable=False)
    token_value: Mapped[str] = mapped_column("token", db.String(64), nullable=False)
    last_used: Mapped[datetime] = mapped_column(nullable=False)

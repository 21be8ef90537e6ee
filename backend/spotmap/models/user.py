"""
SpotMap Backend: User SQLAlchemy Model
=======================================

What:  ORM model for the `users` table backing email + password accounts.
Who:   Used by IdentityService for sign-up, sign-in and token resolution.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, text
from sqlalchemy.orm import Mapped, mapped_column

from spotmap.database import Base


class User(Base):
    """An account in the identity store. Emails are stored lower-cased."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Format: pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"

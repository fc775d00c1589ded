"""Account model."""

import uuid
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, String, UniqueConstraint, Uuid
from sqlalchemy.orm import validates
from sqlalchemy.sql import func

from storefront.db.base import Base


class AuthProvider(str, Enum):
    """Where an account's identity comes from."""

    GOOGLE = "google"
    FACEBOOK = "facebook"
    APPLE = "apple"
    NONE = "none"  # Local password account


class AccountRole(str, Enum):
    """Account role enum."""

    USER = "user"
    ADMIN = "admin"
    CUSTOMER = "customer"


class Account(Base):
    """Shared user record; OAuth identities are linked through provider_user_id."""

    __tablename__ = "accounts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=True)  # Null for OAuth-only accounts

    # Provider linkage
    provider_user_id = Column(String(255), nullable=True, index=True)
    provider = Column(String(20), nullable=True)  # Null only on rows that predate provider tracking
    is_oauth_account = Column(Boolean, default=False, nullable=False)
    is_email_verified = Column(Boolean, default=False, nullable=False)

    # Profile
    display_name = Column(String(100), nullable=False)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    avatar_url = Column(String, nullable=True)

    role = Column(String(20), nullable=False, default=AccountRole.CUSTOMER.value)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=func.now(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("provider", "provider_user_id", name="uq_accounts_provider_user"),
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return value.strip().lower()

    def __repr__(self) -> str:
        return f"<Account {self.id} {self.email} provider={self.provider}>"

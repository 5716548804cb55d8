"""
Account model — one row per registered email.

Created unverified; verified exactly once by consuming a VerificationToken.
"""
import uuid

from sqlalchemy import Column, Text, Boolean, DateTime
from sqlalchemy.sql import func

from sponsorlink.database import Base


def _new_id():
    return str(uuid.uuid4())


class Account(Base):
    __tablename__ = 'accounts'

    id = Column(Text, primary_key=True, default=_new_id)
    email = Column(Text, nullable=False, unique=True)  # case-sensitive as stored
    password_hash = Column(Text, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    stripe_customer_id = Column(Text, nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class VerificationToken(Base):
    __tablename__ = 'verification_tokens'

    token = Column(Text, primary_key=True)
    account_email = Column(Text, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

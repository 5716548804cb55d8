"""
DomainVerification model — DNS TXT ownership challenge per (email, domain).
"""
from sqlalchemy import Column, Integer, Text, Boolean, DateTime, UniqueConstraint
from sqlalchemy.sql import func

from sponsorlink.database import Base


class DomainVerification(Base):
    __tablename__ = 'domain_verifications'

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_email = Column(Text, nullable=False)
    domain = Column(Text, nullable=False)
    code = Column(Text, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    verified_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint('account_email', 'domain', name='uq_domain_verification_email_domain'),
    )

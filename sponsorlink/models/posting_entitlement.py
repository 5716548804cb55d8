"""
PostingEntitlement model — the one-time posting fee has been paid.
"""
from sqlalchemy import Column, Integer, Text, DateTime
from sqlalchemy.sql import func

from sponsorlink.database import Base


class PostingEntitlement(Base):
    __tablename__ = 'posting_entitlements'

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, nullable=False, unique=True)
    amount_paid = Column(Integer, nullable=True)
    transaction_ref = Column(Text, nullable=True)
    granted_at = Column(DateTime(timezone=True), server_default=func.now())

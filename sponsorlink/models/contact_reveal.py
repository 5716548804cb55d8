"""
ContactReveal model — the persisted PaidUnlock fact.

Append-only; unique per (requester_email, target_post_id).
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from sponsorlink.database import Base


class ContactReveal(Base):
    __tablename__ = 'contact_reveals'

    id = Column(Integer, primary_key=True, autoincrement=True)
    requester_email = Column(Text, nullable=False, index=True)
    target_post_id = Column(Integer, ForeignKey('posts.id', ondelete='CASCADE'), nullable=False, index=True)
    amount_paid = Column(Integer, nullable=False)
    transaction_ref = Column(Text, nullable=False)
    revealed_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('requester_email', 'target_post_id', name='uq_contact_reveal_pair'),
    )

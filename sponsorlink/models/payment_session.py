"""
PaymentSession model — one row per hosted checkout session we created.
"""
from sqlalchemy import Column, Integer, Text, DateTime
from sqlalchemy.sql import func

from sponsorlink.database import Base


class PaymentSession(Base):
    __tablename__ = 'payment_sessions'

    id = Column(Text, primary_key=True)  # processor checkout session id
    payer_email = Column(Text, nullable=False, index=True)
    purpose = Column(Text, nullable=False)  # posting_fee / contact_reveal
    amount = Column(Integer, nullable=False)
    target_post_id = Column(Integer, nullable=True)
    status = Column(Text, nullable=False, default='pending', index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

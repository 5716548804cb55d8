"""
UserReport model — a moderation report against a post.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.sql import func

from sponsorlink.database import Base


class UserReport(Base):
    __tablename__ = 'user_reports'

    id = Column(Integer, primary_key=True, autoincrement=True)
    reported_post_id = Column(Integer, ForeignKey('posts.id', ondelete='CASCADE'), nullable=False)
    reporter_email = Column(Text, nullable=True)
    reason = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default='pending', index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

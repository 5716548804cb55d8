"""
Post model — a published creator/sponsor profile (rate card).

At most one Post per owner email; enforced by the unique constraint so
concurrent creates leave exactly one survivor.
"""
from sqlalchemy import Column, Integer, Numeric, Text, Boolean, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func

from sponsorlink.database import Base


class Post(Base):
    __tablename__ = 'posts'

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_email = Column(Text, nullable=False)
    owner_account_id = Column(Text, nullable=False)
    role = Column(Text, nullable=False, index=True)        # creator / sponsor
    name = Column(Text, default='')
    platform = Column(Text, nullable=False, index=True)
    audience_size = Column(Integer, nullable=False, default=0)  # followers or target audience
    price = Column(Numeric(10, 2), nullable=False, default=0)   # rate or budget
    description = Column(Text, nullable=False, default='')
    interests = Column(JSON, nullable=False, default=list)
    contact = Column(Text, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        UniqueConstraint('owner_email', name='uq_post_owner_email'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'userType': self.role,
            'name': self.name or '',
            'platform': self.platform,
            'followers': self.audience_size,
            'pricePoint': float(self.price) if self.price is not None else 0.0,
            'description': self.description,
            'interests': list(self.interests or []),
            'verified': bool(self.verified),
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

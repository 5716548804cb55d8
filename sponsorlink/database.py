"""
Database engine + session factory.

Defaults to SQLite for local dev, Postgres in production. Stores call
get_session() per operation and close the session themselves.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from sponsorlink.config import DATABASE_URL


class Base(DeclarativeBase):
    pass


# Hosted Postgres injects postgres:// but SQLAlchemy 2.x requires postgresql://
url = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

if url.startswith('sqlite'):
    engine = create_engine(url, connect_args={'check_same_thread': False})
else:
    engine = create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)

# Records are handed back to callers after the session closes
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


def get_session():
    """Return a new DB session."""
    return SessionLocal()


def import_models():
    """Import every model module so Base.metadata knows all tables."""
    import importlib
    for name in ('account', 'post', 'contact_reveal', 'posting_entitlement',
                 'payment_session', 'user_report', 'domain_verification'):
        importlib.import_module(f'sponsorlink.models.{name}')

"""Shared test fixtures."""
from decimal import Decimal

import pytest
from unittest.mock import patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sponsorlink.database import Base, import_models


class FakeRedis:
    """Minimal in-memory Redis fake, enough for the circuit breakers."""

    def __init__(self):
        self.get_store = {}
        self.hash_store = {}

    def get(self, key):
        return self.get_store.get(key)

    def set(self, key, value):
        self.get_store[key] = str(value)

    def incr(self, key):
        val = int(self.get_store.get(key, 0)) + 1
        self.get_store[key] = str(val)
        return val

    def delete(self, *keys):
        for k in keys:
            self.get_store.pop(k, None)
            self.hash_store.pop(k, None)

    def hset(self, key, field, value):
        self.hash_store.setdefault(key, {})[field] = str(value)

    def hincrby(self, key, field, amount):
        h = self.hash_store.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)

    def hgetall(self, key):
        return dict(self.hash_store.get(key, {}))

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Fake Redis pipeline that buffers ops until execute()."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def set(self, key, value):
        self._ops.append(lambda: self._redis.set(key, value))
        return self

    def delete(self, *keys):
        self._ops.append(lambda: self._redis.delete(*keys))
        return self

    def hincrby(self, key, field, amount):
        self._ops.append(lambda: self._redis.hincrby(key, field, amount))
        return self

    def hset(self, key, field, value):
        self._ops.append(lambda: self._redis.hset(key, field, value))
        return self

    def execute(self):
        for op in self._ops:
            op()
        self._ops = []


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    import_models()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite. Rolls back after each test."""
    Session = sessionmaker(bind=db_engine, expire_on_commit=False)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(db_session):
    """Route all get_session() calls to the test session.

    We disable close() so that stores closing their session in a finally
    block don't invalidate the shared test session.
    """
    _real_close = db_session.close
    db_session.close = lambda: None
    with patch('sponsorlink.database.get_session', return_value=db_session):
        yield db_session
    db_session.close = _real_close


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture(autouse=True)
def breakers(fake_redis):
    """Fresh breaker registry on the in-memory Redis for every test."""
    from sponsorlink.services import circuit_breaker
    circuit_breaker._registry.clear()
    with patch('sponsorlink.extensions.redis_client', fake_redis):
        circuit_breaker.init_breakers(fake_redis)
        yield circuit_breaker._registry
    circuit_breaker._registry.clear()


@pytest.fixture
def app(fake_redis):
    """Flask test app."""
    from sponsorlink import create_app
    app = create_app()
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


# ── Factories ────────────────────────────────────────────────────────────────

@pytest.fixture
def make_identity():
    from sponsorlink.services.reveal_gate import Identity

    def _make(email='alice@example.com', account_id=None):
        return Identity(account_id=account_id or f'acct-{email}', email=email)
    return _make


@pytest.fixture
def make_post():
    """Builds an unsaved Post. Pass save=True (with db_session) to persist."""
    from sponsorlink.models.post import Post

    def _make(**overrides):
        defaults = dict(
            owner_email='creator@example.com',
            owner_account_id='acct-creator',
            role='creator',
            name='Creator',
            platform='youtube',
            audience_size=50000,
            price=Decimal('500.00'),
            description='Tech reviews and unboxings',
            interests=['gaming', 'tech'],
            contact=None,
            verified=False,
        )
        defaults.update(overrides)
        if defaults['contact'] is None:
            defaults['contact'] = defaults['owner_email']
        return Post(**defaults)
    return _make


@pytest.fixture
def saved_post(db_session, make_post):
    """Factory that persists a Post through the shared test session."""
    def _save(**overrides):
        post = make_post(**overrides)
        db_session.add(post)
        db_session.commit()
        return post
    return _save


@pytest.fixture
def make_account(db_session):
    """Persist an account (verified by default) and return it."""
    from werkzeug.security import generate_password_hash
    from sponsorlink.models.account import Account

    def _make(email='alice@example.com', password='correct-horse', verified=True):
        account = Account(email=email, password_hash=generate_password_hash(password), verified=verified)
        db_session.add(account)
        db_session.commit()
        return account
    return _make


@pytest.fixture
def auth_headers(make_account):
    """Factory: create a verified account and return Authorization headers for it."""
    from sponsorlink.services.accounts import issue_token

    def _make(email='alice@example.com'):
        account = make_account(email=email)
        return {'Authorization': f'Bearer {issue_token(account)}'}
    return _make

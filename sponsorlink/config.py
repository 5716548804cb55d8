"""
Centralized configuration — env vars, fees, closed enums.
"""
import enum
import os
from decimal import Decimal


def _env_bool(name, default='false'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Flask ────────────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')
BASE_URL = os.getenv('BASE_URL', 'http://localhost:3000').rstrip('/')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Auth ─────────────────────────────────────────────────────────────────────
JWT_SECRET = os.getenv('JWT_SECRET', 'dev-jwt-secret-change-me')
JWT_ALGORITHM = 'HS256'
JWT_EXPIRY_HOURS = int(os.getenv('JWT_EXPIRY_HOURS', '24'))
VERIFICATION_TOKEN_TTL_HOURS = int(os.getenv('VERIFICATION_TOKEN_TTL_HOURS', '24'))
EXPOSE_VERIFICATION_LINKS = _env_bool('EXPOSE_VERIFICATION_LINKS')

# ── Stripe ────────────────────────────────────────────────────────────────────
STRIPE_SECRET_KEY = os.getenv('STRIPE_SECRET_KEY')
STRIPE_WEBHOOK_SECRET = os.getenv('STRIPE_WEBHOOK_SECRET')
CURRENCY = os.getenv('CURRENCY', 'usd')

# Fees in minor currency units (cents)
POST_FEE = int(os.getenv('POST_FEE', '500'))
CONTACT_REVEAL_FEE = int(os.getenv('CONTACT_REVEAL_FEE', '100'))

# ── Email (SMTP) ──────────────────────────────────────────────────────────────
SMTP_HOST = os.getenv('SMTP_HOST')
SMTP_PORT = int(os.getenv('SMTP_PORT', '587'))
SMTP_USER = os.getenv('SMTP_USER')
SMTP_PASSWORD = os.getenv('SMTP_PASSWORD')
EMAIL_FROM = os.getenv('EMAIL_FROM', 'no-reply@sponsorlink.local')

# ── Slack notifications ──────────────────────────────────────────────────────
SLACK_WEBHOOK_URL = os.getenv('SLACK_WEBHOOK_URL')

# ── Matching ─────────────────────────────────────────────────────────────────
RECOMMENDATION_LIMIT = int(os.getenv('RECOMMENDATION_LIMIT', '6'))

# ── Column limits ────────────────────────────────────────────────────────────
# posts.audience_size is a 32-bit INTEGER, posts.price is NUMERIC(10, 2)
MAX_AUDIENCE_SIZE = 2**31 - 1
MAX_PRICE = Decimal('99999999.99')

# ── Domain ownership ─────────────────────────────────────────────────────────
DOMAIN_TXT_PREFIX = os.getenv('DOMAIN_TXT_PREFIX', 'sponsorlink-verification')


# ── Closed enums ─────────────────────────────────────────────────────────────

class Role(str, enum.Enum):
    CREATOR = 'creator'
    SPONSOR = 'sponsor'

    @property
    def opposite(self):
        return Role.SPONSOR if self is Role.CREATOR else Role.CREATOR


class Platform(str, enum.Enum):
    YOUTUBE = 'youtube'
    INSTAGRAM = 'instagram'
    TIKTOK = 'tiktok'
    TWITTER = 'twitter'
    TWITCH = 'twitch'
    LINKEDIN = 'linkedin'


class PaymentPurpose(str, enum.Enum):
    POSTING_FEE = 'posting_fee'
    CONTACT_REVEAL = 'contact_reveal'


def parse_enum(enum_cls, value, field_name):
    """Case-insensitive conversion of a request string into a closed enum."""
    from sponsorlink.errors import ValidationError

    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field_name} is required')
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        allowed = ', '.join(m.value for m in enum_cls)
        raise ValidationError(f'Invalid {field_name} {value!r} (expected one of: {allowed})')


PAYMENT_FEES = {
    PaymentPurpose.POSTING_FEE: POST_FEE,
    PaymentPurpose.CONTACT_REVEAL: CONTACT_REVEAL_FEE,
}

PAYMENT_SESSION_STATUSES = ['pending', 'completed', 'failed', 'cancelled']

REPORT_STATUSES = ['pending', 'reviewed', 'resolved', 'dismissed']

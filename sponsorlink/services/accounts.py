"""
Accounts — signup, email verification, login, bearer resolution.

Signup for an email that exists but is still unverified resets the password
and re-issues verification (earlier tokens are discarded). Signup for a
verified email is rejected.
"""
import logging
import re
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from sponsorlink.config import (
    JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRY_HOURS, VERIFICATION_TOKEN_TTL_HOURS,
)
from sponsorlink.errors import AuthenticationError, ConflictError, ValidationError
from sponsorlink.models.account import Account, VerificationToken
from sponsorlink.services.reveal_gate import Identity
from sponsorlink.services.stores import storage_session

logger = logging.getLogger('services.accounts')

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s.]+$')
MIN_PASSWORD_LENGTH = 8


def _now():
    return datetime.now(timezone.utc)


def _aware(dt):
    # SQLite hands back naive datetimes
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def validate_email(email):
    if not EMAIL_RE.match(email or '') or '@.' in email:
        raise ValidationError('Invalid email address')


def _issue_verification_token(session, email):
    session.query(VerificationToken).filter_by(account_email=email).delete()
    token = str(uuid.uuid4())
    session.add(VerificationToken(
        token=token,
        account_email=email,
        expires_at=_now() + timedelta(hours=VERIFICATION_TOKEN_TTL_HOURS),
    ))
    return token


def signup(email, password):
    """
    Register (or re-register an unverified) account.

    Returns the fresh verification token; the caller is responsible for
    delivering it.
    """
    email = (email or '').strip()
    if not email or not password:
        raise ValidationError('Email and password required')
    validate_email(email)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')

    try:
        with storage_session('accounts.signup') as session:
            account = session.query(Account).filter_by(email=email).first()
            if account is not None and account.verified:
                raise ConflictError('Email already registered')

            if account is None:
                session.add(Account(email=email, password_hash=generate_password_hash(password)))
                logger.info("New account registered: %s", email)
            else:
                account.password_hash = generate_password_hash(password)
                logger.info("Unverified account %s signed up again, re-issuing verification", email)

            token = _issue_verification_token(session, email)
            session.commit()
            return token
    except IntegrityError as e:
        # Concurrent signup for the same email won the insert
        raise ConflictError('Email already registered') from e


def verify_email(token):
    """Consume a single-use verification token and mark its account verified."""
    if not token:
        raise ValidationError('Invalid verification token')

    with storage_session('accounts.verify_email') as session:
        row = session.get(VerificationToken, token)
        if row is None:
            raise ValidationError('Invalid verification token')
        if _aware(row.expires_at) < _now():
            session.delete(row)
            session.commit()
            raise ValidationError('Verification token expired')

        account = session.query(Account).filter_by(email=row.account_email).first()
        if account is None:
            session.delete(row)
            session.commit()
            raise ValidationError('Invalid verification token')

        account.verified = True
        session.delete(row)
        session.commit()
        logger.info("Account %s verified", account.email)
        return account


def pending_verification_token(email):
    """Latest unexpired token for an unverified account, or None (dev helper)."""
    with storage_session('accounts.pending_verification_token') as session:
        row = session.query(VerificationToken).filter_by(account_email=email).order_by(
            VerificationToken.expires_at.desc(),
        ).first()
        if row is None or _aware(row.expires_at) < _now():
            return None
        return row.token


def purge_expired_tokens():
    with storage_session('accounts.purge_expired_tokens') as session:
        deleted = session.query(VerificationToken).filter(VerificationToken.expires_at < _now()).delete()
        session.commit()
    logger.info("Purged %d expired verification tokens", deleted)
    return deleted


def get_account(email):
    with storage_session('accounts.get_account') as session:
        return session.query(Account).filter_by(email=email).first()


def set_stripe_customer_id(email, customer_id):
    with storage_session('accounts.set_stripe_customer_id') as session:
        account = session.query(Account).filter_by(email=email).first()
        if account is None:
            return None
        account.stripe_customer_id = customer_id
        session.commit()
        return account


# ── Login + bearer credentials ───────────────────────────────────────────────

def issue_token(account):
    now = _now()
    payload = {
        'sub': account.id,
        'email': account.email,
        'iat': now,
        'exp': now + timedelta(hours=JWT_EXPIRY_HOURS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def login(email, password):
    email = (email or '').strip()
    if not email or not password:
        raise ValidationError('Email and password required')

    account = get_account(email)
    if account is None or not check_password_hash(account.password_hash, password):
        raise AuthenticationError('Invalid credentials')
    if not account.verified:
        raise AuthenticationError('Please verify your email first')

    logger.info("Login: %s", email)
    return issue_token(account), account


def resolve_identity(bearer):
    """
    Bearer credential → Identity.

    Returns None when no credential is presented; raises AuthenticationError
    when one is presented but invalid or expired.
    """
    if not bearer:
        return None
    try:
        payload = jwt.decode(bearer, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError('Token expired')
    except jwt.InvalidTokenError:
        raise AuthenticationError('Invalid token')

    account_id = payload.get('sub')
    email = payload.get('email')
    if not account_id or not email:
        raise AuthenticationError('Invalid token')
    return Identity(account_id=account_id, email=email)

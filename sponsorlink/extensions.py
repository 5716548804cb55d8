"""
Shared client instances — Redis, Stripe.

Initialized at import so importing this module is always safe (even when env
vars are missing during tests): redis.from_url does not connect until first
use, and Stripe is only keyed when a secret is configured.
"""
import logging

import redis
import stripe

from sponsorlink.config import REDIS_URL, STRIPE_SECRET_KEY

logger = logging.getLogger('sponsorlink.extensions')

# ── Redis ─────────────────────────────────────────────────────────────────────
redis_client = redis.from_url(REDIS_URL, decode_responses=True)

# ── Stripe ────────────────────────────────────────────────────────────────────
stripe_configured = False
if STRIPE_SECRET_KEY:
    stripe.api_key = STRIPE_SECRET_KEY
    stripe_configured = True
    logger.info("Stripe client configured")
else:
    logger.warning("STRIPE_SECRET_KEY not set — checkout sessions will fail")

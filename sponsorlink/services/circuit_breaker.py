"""
Circuit breakers for external collaborators (Stripe, SMTP, DNS).

Breaker state lives in Redis so every worker process sees the same view:
  - CLOSED    → normal operation, calls pass through
  - OPEN      → too many consecutive failures, calls short-circuit
  - HALF_OPEN → after reset_timeout, one probe call is allowed

Health counters are stored in a Redis hash for the /api/health endpoint.
Redis trouble never blocks a call: breaker bookkeeping fails open.
"""
import logging
import time
from functools import wraps

from sponsorlink.errors import UpstreamError

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'


class CircuitOpenError(UpstreamError):
    """Raised when calling through an open breaker."""

    def __init__(self, name, retry_after=None):
        self.retry_after = retry_after
        payload = {}
        if retry_after is not None:
            payload['retryAfter'] = round(retry_after, 1)
        super().__init__(name, 'circuit open', **payload)


class CircuitBreaker:
    """
    Redis-backed circuit breaker.

    Usage:
        cb = CircuitBreaker('stripe', redis_client, failure_threshold=3, reset_timeout=120)
        session = cb.call(stripe.checkout.Session.retrieve, session_id)

    Only exceptions listed in `trip_on` count as failures; anything else
    (e.g. a card decline surfaced as a 4xx) passes through untouched.
    """

    PREFIX = 'sponsorlink:cb'

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=120,
                 trip_on=(Exception,)):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.trip_on = trip_on

    def _key(self, suffix):
        return f'{self.PREFIX}:{self.name}:{suffix}'

    # ── State ─────────────────────────────────────────────────────────

    @property
    def state(self):
        try:
            current = self.redis.get(self._key('state'))
            if current is None:
                return CLOSED
            if current == OPEN and self._seconds_since_failure() > self.reset_timeout:
                self._set_state(HALF_OPEN)
                return HALF_OPEN
            return current
        except Exception:
            return CLOSED

    def _set_state(self, new_state):
        try:
            self.redis.set(self._key('state'), new_state)
        except Exception:
            logger.debug("Could not persist state for '%s'", self.name, exc_info=True)

    def _seconds_since_failure(self):
        last = self.redis.get(self._key('last_failure'))
        if not last:
            return float('inf')
        return time.time() - float(last)

    @property
    def failure_count(self):
        try:
            value = self.redis.get(self._key('failures'))
            return int(value) if value else 0
        except Exception:
            return 0

    # ── Health ────────────────────────────────────────────────────────

    def get_health(self):
        """Return health metrics dict for this service."""
        health = {
            'name': self.name,
            'state': 'unknown',
            'failure_count': 0,
            'failure_threshold': self.failure_threshold,
            'reset_timeout': self.reset_timeout,
            'total_success': 0,
            'total_failure': 0,
            'last_error': '',
        }
        try:
            data = self.redis.hgetall(self._key('health'))
            health.update(
                state=self.state,
                failure_count=self.failure_count,
                total_success=int(data.get('success', 0)),
                total_failure=int(data.get('failure', 0)),
                last_error=data.get('last_error', ''),
            )
        except Exception:
            logger.warning("Health lookup failed for '%s'", self.name, exc_info=True)
        return health

    # ── Calls ─────────────────────────────────────────────────────────

    def call(self, func, *args, **kwargs):
        """Execute func through the breaker."""
        if self.state == OPEN:
            try:
                retry_after = max(0.0, self.reset_timeout - self._seconds_since_failure())
            except Exception:
                retry_after = None
            raise CircuitOpenError(self.name, retry_after=retry_after)

        try:
            result = func(*args, **kwargs)
        except self.trip_on as e:
            self._on_failure(e)
            raise
        self._on_success()
        return result

    def protect(self, func):
        """Decorator form of call()."""
        @wraps(func)
        def wrapper(*args, **kwargs):
            return self.call(func, *args, **kwargs)
        return wrapper

    def _on_success(self):
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.hincrby(self._key('health'), 'success', 1)
            pipe.execute()
        except Exception:
            logger.debug("Could not record success for '%s'", self.name, exc_info=True)

    def _on_failure(self, error):
        try:
            count = self.redis.incr(self._key('failures'))
            self.redis.set(self._key('last_failure'), str(time.time()))
            pipe = self.redis.pipeline()
            pipe.hincrby(self._key('health'), 'failure', 1)
            pipe.hset(self._key('health'), 'last_error', str(error)[:200])
            pipe.execute()
        except Exception:
            logger.debug("Could not record failure for '%s'", self.name, exc_info=True)
            return

        if count >= self.failure_threshold:
            self._set_state(OPEN)
            logger.warning("Circuit '%s' OPENED after %d failures: %s", self.name, count, error)
        else:
            logger.info("Circuit '%s' failure %d/%d: %s", self.name, count, self.failure_threshold, error)

    def reset(self):
        """Manually close the breaker."""
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.delete(self._key('last_failure'))
            pipe.execute()
            logger.info("Circuit '%s' manually reset to CLOSED", self.name)
        except Exception as e:
            logger.error("Failed to reset circuit '%s': %s", self.name, e)


# ── Registry ──────────────────────────────────────────────────────────────

_registry = {}


def get_breaker(name):
    """Return a registered breaker, initializing the defaults on first use."""
    if name not in _registry:
        from sponsorlink.extensions import redis_client
        init_breakers(redis_client)
    return _registry[name]


def get_all_breakers():
    return dict(_registry)


def init_breakers(redis_client):
    """Register the breakers for every external collaborator."""
    import stripe

    breakers = {
        # Card declines and bad requests are caller problems, not outages
        'stripe': CircuitBreaker(
            'stripe', redis_client, failure_threshold=3, reset_timeout=120,
            trip_on=(stripe.APIConnectionError, stripe.APIError, stripe.RateLimitError),
        ),
        'smtp': CircuitBreaker('smtp', redis_client, failure_threshold=3, reset_timeout=300),
        'dns': CircuitBreaker('dns', redis_client, failure_threshold=5, reset_timeout=60),
    }
    _registry.update(breakers)
    return breakers

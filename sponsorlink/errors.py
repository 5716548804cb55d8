"""
Typed error taxonomy shared by the core and the routing layer.

Each error carries the HTTP status the Flask error handler maps it to, plus
an optional payload merged into the JSON body.
"""


class MarketplaceError(Exception):
    """Base class for every error the core surfaces to callers."""
    status_code = 500

    def __init__(self, message, **payload):
        self.message = message
        self.payload = payload
        super().__init__(message)

    def to_dict(self):
        body = {'error': self.message}
        body.update(self.payload)
        return body


class ValidationError(MarketplaceError):
    """Malformed or missing input, or a plain gating rejection."""
    status_code = 400


class AuthenticationError(MarketplaceError):
    """Missing/invalid bearer credential or rejected login."""
    status_code = 401


class PaymentRequiredError(MarketplaceError):
    """Operation blocked pending payment — callers show a payment prompt."""
    status_code = 402

    def __init__(self, message, purpose=None, amount=None, **payload):
        payload.setdefault('requiresPayment', True)
        if purpose is not None:
            payload['paymentType'] = getattr(purpose, 'value', purpose)
        if amount is not None:
            payload['amount'] = amount
        super().__init__(message, **payload)


class NotFoundError(MarketplaceError):
    """Referenced post, account or payment session is absent."""
    status_code = 404


class ConflictError(MarketplaceError):
    """Uniqueness invariant violated on a fresh write."""
    status_code = 409


class UpstreamError(MarketplaceError):
    """Storage or external collaborator failure. Not retried by the core."""
    status_code = 502

    def __init__(self, service, message, **payload):
        self.service = service
        super().__init__(f'{service} unavailable: {message}', **payload)

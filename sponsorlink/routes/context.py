"""
Request context helpers shared by the blueprints.
"""
import math

from flask import g, request

from sponsorlink.errors import AuthenticationError, ValidationError


def current_identity():
    """Identity of the caller, or None for anonymous/invalid credentials."""
    return getattr(g, 'identity', None)


def require_identity():
    identity = current_identity()
    if identity is None:
        raise getattr(g, 'auth_error', None) or AuthenticationError('Access token required')
    return identity


def json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _check_range(name, value, maximum):
    if maximum is not None and not 0 <= value <= maximum:
        raise ValidationError(f'{name} must be between 0 and {maximum}')
    return value


def int_arg(name, maximum=None):
    """Optional integer query parameter; 400 when present but malformed or out of range."""
    raw = request.args.get(name)
    if raw in (None, ''):
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f'{name} must be an integer')
    return _check_range(name, value, maximum)


def number_arg(name, maximum=None):
    raw = request.args.get(name)
    if raw in (None, ''):
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError(f'{name} must be a number')
    if not math.isfinite(value):
        raise ValidationError(f'{name} must be a finite number')
    return _check_range(name, value, maximum)

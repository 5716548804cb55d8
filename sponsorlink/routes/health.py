"""
Health routes — liveness plus circuit breaker state for external collaborators.
"""
from flask import Blueprint, jsonify

from sponsorlink.services.circuit_breaker import get_all_breakers

bp = Blueprint('health', __name__)


@bp.route('/health')
def health_check():
    return jsonify({'status': 'healthy'}), 200


@bp.route('/api/health')
def api_health():
    """Breaker state + success/failure counters per collaborator."""
    services = {name: cb.get_health() for name, cb in get_all_breakers().items()}
    return jsonify({'services': services})


@bp.route('/api/health/<service>/reset', methods=['POST'])
def reset_circuit(service):
    breaker = get_all_breakers().get(service)
    if breaker is None:
        return jsonify({'error': f'Unknown service: {service}'}), 404
    breaker.reset()
    return jsonify({'ok': True, 'service': service, 'state': breaker.state})

"""
Domain verification routes.
"""
from flask import Blueprint, jsonify

from sponsorlink.routes.context import json_body, require_identity
from sponsorlink.services import domains

bp = Blueprint('domains', __name__)


@bp.route('/api/verify/domain/start', methods=['POST'])
def start_domain_verification():
    identity = require_identity()
    return jsonify(domains.start_verification(identity, json_body().get('domain')))


@bp.route('/api/verify/domain/check', methods=['POST'])
def check_domain_verification():
    identity = require_identity()
    return jsonify(domains.check_verification(identity, json_body().get('domain')))

"""
Payment routes — Stripe checkout creation, confirmation and webhook.
"""
from flask import Blueprint, jsonify, request

from sponsorlink.routes.context import json_body, require_identity
from sponsorlink.services.payments import PaymentService

bp = Blueprint('payments', __name__)

service = PaymentService()


@bp.route('/api/payment/create-posting-session', methods=['POST'])
def create_posting_session():
    identity = require_identity()
    return jsonify(service.start_posting_checkout(identity))


@bp.route('/api/payment/create-contact-reveal-session', methods=['POST'])
def create_contact_reveal_session():
    identity = require_identity()
    return jsonify(service.start_reveal_checkout(identity, json_body().get('targetPostId')))


@bp.route('/api/payment/success')
def payment_success():
    return jsonify(service.confirm_checkout(request.args.get('session_id')))


@bp.route('/api/payment/status')
def payment_status():
    identity = require_identity()
    return jsonify(service.payment_status(identity))


@bp.route('/api/payment/webhook', methods=['POST'])
def stripe_webhook():
    """Stripe needs the raw body for signature verification."""
    payload = request.get_data()
    signature = request.headers.get('Stripe-Signature', '')
    return jsonify(service.handle_webhook(payload, signature))

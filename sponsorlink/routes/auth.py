"""
Auth routes — signup, email verification, login.
"""
import logging

from flask import Blueprint, jsonify

from sponsorlink.config import EXPOSE_VERIFICATION_LINKS
from sponsorlink.errors import NotFoundError
from sponsorlink.routes.context import json_body, require_identity
from sponsorlink.services import accounts, mailer

logger = logging.getLogger('routes.auth')

bp = Blueprint('auth', __name__)


@bp.route('/api/auth/signup', methods=['POST'])
def signup():
    data = json_body()
    email = (data.get('email') or '').strip()
    token = accounts.signup(email, data.get('password'))
    email_sent = mailer.send_verification_email(email, token)
    return jsonify({
        'success': True,
        'emailSent': email_sent,
        'message': 'Account created. Please check your email to verify your account.',
    })


@bp.route('/api/auth/verify/<token>')
def verify(token):
    account = accounts.verify_email(token)
    return jsonify({
        'success': True,
        'email': account.email,
        'message': 'Email verified successfully! You can now log in.',
    })


@bp.route('/api/auth/login', methods=['POST'])
def login():
    data = json_body()
    token, account = accounts.login(data.get('email'), data.get('password'))
    return jsonify({
        'success': True,
        'token': token,
        'user': {'id': account.id, 'email': account.email, 'verified': account.verified},
    })


@bp.route('/api/auth/me')
def me():
    identity = require_identity()
    return jsonify({'id': identity.account_id, 'email': identity.email})


@bp.route('/api/dev/verification-link/<email>')
def dev_verification_link(email):
    """Development only: fetch the pending verification link without SMTP."""
    if not EXPOSE_VERIFICATION_LINKS:
        raise NotFoundError('Not found')
    token = accounts.pending_verification_token(email)
    if token is None:
        raise NotFoundError('No pending verification for this email')
    return jsonify({'verificationLink': mailer.verification_link(token), 'token': token})

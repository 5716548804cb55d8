"""
Post routes — listing, creation, recommendations and contact reveal.

Every post leaving this module passes through RevealGate.present so the
contact string is masked unless the caller owns or has paid for it.
"""
import logging

from flask import Blueprint, jsonify, request

from sponsorlink.config import MAX_AUDIENCE_SIZE, MAX_PRICE, RECOMMENDATION_LIMIT, Platform, Role, parse_enum
from sponsorlink.errors import NotFoundError, ValidationError
from sponsorlink.routes.context import current_identity, int_arg, json_body, number_arg, require_identity
from sponsorlink.services import match_scorer
from sponsorlink.services.posting import PostingGate
from sponsorlink.services.reveal_gate import RevealGate
from sponsorlink.services.stores import PostStore

logger = logging.getLogger('routes.posts')

bp = Blueprint('posts', __name__)

posts = PostStore()
gate = RevealGate()
posting_gate = PostingGate(posts=posts)


def _optional_enum(enum_cls, name):
    raw = request.args.get(name)
    if raw in (None, '', 'all'):
        return None
    return parse_enum(enum_cls, raw, name)


def _load_post(post_id):
    post = posts.get(post_id)
    if post is None:
        raise NotFoundError('Post not found')
    return post


@bp.route('/api/posts')
def list_posts():
    results = posts.search(
        role=_optional_enum(Role, 'userType'),
        platform=_optional_enum(Platform, 'platform'),
        min_followers=int_arg('minFollowers', MAX_AUDIENCE_SIZE),
        max_followers=int_arg('maxFollowers', MAX_AUDIENCE_SIZE),
        min_price=number_arg('minPrice', MAX_PRICE),
        max_price=number_arg('maxPrice', MAX_PRICE),
        interest=request.args.get('interests') or None,
    )
    return jsonify(gate.present_many(current_identity(), results))


@bp.route('/api/posts/<int:post_id>')
def get_post(post_id):
    data, _ = gate.present_one(current_identity(), _load_post(post_id))
    return jsonify(data)


@bp.route('/api/posts', methods=['POST'])
def create_post():
    identity = require_identity()
    post = posting_gate.create_post(identity, json_body())
    data, _ = gate.present_one(identity, post)
    return jsonify({'success': True, 'post': data}), 201


@bp.route('/api/posts/mine', methods=['DELETE'])
def delete_my_post():
    identity = require_identity()
    posting_gate.delete_own_post(identity)
    return jsonify({'success': True})


@bp.route('/api/recommendations')
def recommendations():
    identity = require_identity()
    subject = posts.find_by_owner_email(identity.email)
    if subject is None:
        raise NotFoundError('Create a post to get recommendations')

    role = Role(subject.role)
    pool = posts.list_by_role(role.opposite, excluding_id=subject.id)
    ranked = match_scorer.recommend(subject, pool, limit=RECOMMENDATION_LIMIT)

    presented = gate.present_many(identity, [m.post for m in ranked])
    matches = []
    for match, data in zip(ranked, presented):
        data['matchScore'] = match.score
        data['scoreBreakdown'] = match_scorer.score_breakdown(subject, match.post).to_dict()
        matches.append(data)

    logger.info("Served %d recommendations", len(matches), extra={'viewer': identity.email, 'post_id': subject.id})
    return jsonify({'matches': matches})


@bp.route('/api/reveal-contact', methods=['POST'])
def reveal_contact():
    identity = require_identity()
    target_id = json_body().get('targetPostId')
    if target_id in (None, ''):
        raise ValidationError('Target post ID is required')
    try:
        target_id = int(target_id)
    except (TypeError, ValueError):
        raise ValidationError('Target post ID must be an integer')

    target = _load_post(target_id)
    visibility = gate.require_visible(identity, target)
    return jsonify({
        'success': True,
        'targetPostId': target.id,
        'contactInfo': target.contact,
        'reason': visibility.reason.value,
    })

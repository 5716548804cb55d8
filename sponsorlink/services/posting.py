"""
Post creation gate.

An account may create a post only if
  (a) it holds a posting entitlement          → else PaymentRequiredError
  (b) it does not already own a post          → else ValidationError
  (c) the contact equals its verified email   → else ValidationError

The prior existence check in (b) is advisory; the unique owner_email
constraint settles concurrent creates and the loser gets ConflictError.
"""
import logging
from decimal import Decimal, InvalidOperation

from sponsorlink.config import MAX_AUDIENCE_SIZE, MAX_PRICE, POST_FEE, PaymentPurpose, Platform, Role, parse_enum
from sponsorlink.errors import NotFoundError, PaymentRequiredError, ValidationError
from sponsorlink.models.post import Post
from sponsorlink.services.stores import EntitlementStore, PostStore

logger = logging.getLogger('services.posting')

MAX_DESCRIPTION_LENGTH = 2000
MAX_INTERESTS = 20


def parse_interests(raw):
    """Comma-separated string or list → ordered, de-duplicated tag list."""
    if raw is None:
        return []
    if isinstance(raw, str):
        items = raw.split(',')
    elif isinstance(raw, (list, tuple)):
        items = raw
    else:
        raise ValidationError('interests must be a list or comma-separated string')

    tags, seen = [], set()
    for item in items:
        tag = str(item).strip()
        key = tag.lower()
        if tag and key not in seen:
            seen.add(key)
            tags.append(tag)
    if len(tags) > MAX_INTERESTS:
        raise ValidationError(f'At most {MAX_INTERESTS} interests are allowed')
    return tags


def _non_negative_int(value, field, maximum):
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f'{field} must be a whole number')
    if number < 0:
        raise ValidationError(f'{field} must not be negative')
    if number > maximum:
        raise ValidationError(f'{field} must be at most {maximum}')
    return number


def _non_negative_decimal(value, field, maximum):
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f'{field} must be a number')
    if not number.is_finite():
        raise ValidationError(f'{field} must be a number')
    if number < 0:
        raise ValidationError(f'{field} must not be negative')
    # quantize raises InvalidOperation past the context precision
    if number > maximum or number.quantize(Decimal('0.01')) > maximum:
        raise ValidationError(f'{field} must be at most {maximum}')
    return number.quantize(Decimal('0.01'))


def build_post(identity, fields):
    """Validate a request body into an unsaved Post owned by identity."""
    description = (fields.get('description') or '').strip()
    if not description:
        raise ValidationError('description is required')
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f'description must be at most {MAX_DESCRIPTION_LENGTH} characters')

    return Post(
        owner_email=identity.email,
        owner_account_id=identity.account_id,
        role=parse_enum(Role, fields.get('userType') or fields.get('role'), 'userType').value,
        name=(fields.get('name') or '').strip(),
        platform=parse_enum(Platform, fields.get('platform'), 'platform').value,
        audience_size=_non_negative_int(fields.get('followers', 0), 'followers', MAX_AUDIENCE_SIZE),
        price=_non_negative_decimal(fields.get('pricePoint', 0), 'pricePoint', MAX_PRICE),
        description=description,
        interests=parse_interests(fields.get('interests')),
        contact=(fields.get('contactInfo') or '').strip(),
        verified=False,
    )


class PostingGate:

    def __init__(self, posts: PostStore = None, entitlements: EntitlementStore = None, post_fee: int = POST_FEE):
        self.posts = posts or PostStore()
        self.entitlements = entitlements or EntitlementStore()
        self.post_fee = post_fee

    def authorize(self, identity, contact):
        """Raise unless identity may create a post with this contact string."""
        if not self.entitlements.has_posting_entitlement(identity.email):
            raise PaymentRequiredError(
                'Payment required to create a post',
                purpose=PaymentPurpose.POSTING_FEE,
                amount=self.post_fee,
            )
        if self.posts.find_by_owner_email(identity.email) is not None:
            raise ValidationError('You already have a post. Delete it before creating a new one.')
        if contact != identity.email:
            raise ValidationError('Contact info must match your verified email address')

    def create_post(self, identity, fields):
        contact = (fields.get('contactInfo') or '').strip()
        self.authorize(identity, contact)
        post = self.posts.insert(build_post(identity, fields))
        logger.info("Post created", extra={'viewer': identity.email, 'post_id': post.id})
        return post

    def delete_own_post(self, identity):
        if not self.posts.delete_by_owner_email(identity.email):
            raise NotFoundError('You do not have a post')
        logger.info("Post deleted", extra={'viewer': identity.email})

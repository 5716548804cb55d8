"""
SQLAlchemy implementations of the storage contracts the core reads and writes
through: posts, paid unlocks, posting entitlements.

Every call opens its own session via database.get_session() and commits or
rolls back before closing. Uniqueness is enforced by the schema:
  - posts.owner_email                               → one post per account
  - contact_reveals(requester_email, target_post_id) → one unlock per pair
  - posting_entitlements.email                      → one entitlement per account

Integrity violations are the expected outcome of a lost race and are mapped
to ConflictError / inserted=False. Any other storage failure is rolled back
and surfaced as UpstreamError.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from sponsorlink import database
from sponsorlink.errors import ConflictError, UpstreamError
from sponsorlink.models.contact_reveal import ContactReveal
from sponsorlink.models.post import Post
from sponsorlink.models.posting_entitlement import PostingEntitlement

logger = logging.getLogger('services.stores')


@dataclass(frozen=True)
class InsertResult:
    inserted: bool


@contextmanager
def storage_session(operation):
    """Yield a session; translate unexpected storage failures to UpstreamError."""
    session = database.get_session()
    try:
        yield session
    except IntegrityError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Storage failure during %s", operation, exc_info=True)
        raise UpstreamError('storage', str(e.__class__.__name__)) from e
    finally:
        session.close()


# ── Posts ────────────────────────────────────────────────────────────────────

class PostStore:

    def get(self, post_id):
        with storage_session('post.get') as session:
            return session.get(Post, post_id)

    def find_by_owner_email(self, email):
        with storage_session('post.find_by_owner_email') as session:
            return session.query(Post).filter_by(owner_email=email).first()

    def list_by_role(self, role, excluding_id=None):
        """All posts of one role, most recent first."""
        role = getattr(role, 'value', role)
        with storage_session('post.list_by_role') as session:
            query = session.query(Post).filter(Post.role == role)
            if excluding_id is not None:
                query = query.filter(Post.id != excluding_id)
            return query.order_by(Post.created_at.desc(), Post.id.desc()).all()

    def search(self, role=None, platform=None, min_followers=None, max_followers=None,
               min_price=None, max_price=None, interest=None):
        """
        Listing query behind GET /api/posts. Numeric and enum filters run in SQL;
        the interest filter is a case-insensitive substring match over the JSON
        tag list, applied in Python.
        """
        with storage_session('post.search') as session:
            query = session.query(Post)
            if role is not None:
                query = query.filter(Post.role == getattr(role, 'value', role))
            if platform is not None:
                query = query.filter(Post.platform == getattr(platform, 'value', platform))
            if min_followers is not None:
                query = query.filter(Post.audience_size >= min_followers)
            if max_followers is not None:
                query = query.filter(Post.audience_size <= max_followers)
            if min_price is not None:
                query = query.filter(Post.price >= Decimal(str(min_price)))
            if max_price is not None:
                query = query.filter(Post.price <= Decimal(str(max_price)))
            posts = query.order_by(Post.created_at.desc(), Post.id.desc()).all()

        if interest:
            needle = interest.strip().lower()
            posts = [p for p in posts if any(needle in (tag or '').lower() for tag in (p.interests or []))]
        return posts

    def insert(self, post):
        """Insert a new post. Raises ConflictError if the owner already has one."""
        try:
            with storage_session('post.insert') as session:
                session.add(post)
                session.commit()
                session.refresh(post)  # load server defaults before detaching
                return post
        except IntegrityError as e:
            logger.info("Post insert for %s lost to an existing post", post.owner_email)
            raise ConflictError('A post already exists for this account') from e

    def delete_by_owner_email(self, email):
        with storage_session('post.delete_by_owner_email') as session:
            deleted = session.query(Post).filter_by(owner_email=email).delete()
            session.commit()
            return deleted > 0

    def mark_verified(self, owner_email, verified=True):
        """Explicit read-modify-write of a post's verification flag."""
        with storage_session('post.mark_verified') as session:
            post = session.query(Post).filter_by(owner_email=owner_email).first()
            if post is None:
                return None
            post.verified = verified
            session.commit()
            return post


# ── Paid unlocks ─────────────────────────────────────────────────────────────

class UnlockStore:

    def exists(self, requester_email, target_post_id):
        with storage_session('unlock.exists') as session:
            row = session.query(ContactReveal.id).filter_by(
                requester_email=requester_email,
                target_post_id=target_post_id,
            ).first()
            return row is not None

    def unlocked_post_ids(self, requester_email):
        with storage_session('unlock.unlocked_post_ids') as session:
            rows = session.query(ContactReveal.target_post_id).filter_by(
                requester_email=requester_email,
            ).all()
            return {row[0] for row in rows}

    def insert_if_absent(self, requester_email, target_post_id, amount, tx_ref):
        """
        Insert the unlock fact unless the pair already has one.

        The unique constraint decides; a duplicate is reported as
        inserted=False rather than an error.
        """
        if self.exists(requester_email, target_post_id):
            return InsertResult(inserted=False)
        try:
            with storage_session('unlock.insert_if_absent') as session:
                session.add(ContactReveal(
                    requester_email=requester_email,
                    target_post_id=target_post_id,
                    amount_paid=amount,
                    transaction_ref=tx_ref,
                ))
                session.commit()
                return InsertResult(inserted=True)
        except IntegrityError as e:
            if self.exists(requester_email, target_post_id):
                return InsertResult(inserted=False)
            # Not a duplicate, e.g. the target post was deleted meanwhile
            raise ConflictError('Unlock rejected by storage', targetPostId=target_post_id) from e


# ── Posting entitlements ─────────────────────────────────────────────────────

class EntitlementStore:

    def has_posting_entitlement(self, email):
        with storage_session('entitlement.has') as session:
            row = session.query(PostingEntitlement.id).filter_by(email=email).first()
            return row is not None

    def grant_posting_entitlement(self, email, amount=None, tx_ref=None):
        """Idempotent: granting twice leaves one row."""
        if self.has_posting_entitlement(email):
            return InsertResult(inserted=False)
        try:
            with storage_session('entitlement.grant') as session:
                session.add(PostingEntitlement(email=email, amount_paid=amount, transaction_ref=tx_ref))
                session.commit()
                return InsertResult(inserted=True)
        except IntegrityError:
            return InsertResult(inserted=False)

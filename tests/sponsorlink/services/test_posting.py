"""Tests for sponsorlink.services.posting — the post creation gate."""
from decimal import Decimal

import pytest

from sponsorlink.errors import ConflictError, NotFoundError, PaymentRequiredError, ValidationError
from sponsorlink.models.post import Post
from sponsorlink.services.posting import PostingGate, build_post, parse_interests
from sponsorlink.services.stores import EntitlementStore, PostStore


def _fields(**overrides):
    fields = {
        'userType': 'creator',
        'name': 'Alice',
        'platform': 'youtube',
        'followers': 50000,
        'pricePoint': 500,
        'description': 'Tech reviews',
        'interests': 'gaming, tech',
        'contactInfo': 'alice@example.com',
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def gate():
    return PostingGate(post_fee=500)


@pytest.fixture
def alice(make_identity):
    return make_identity('alice@example.com')


@pytest.fixture
def entitled(alice):
    EntitlementStore().grant_posting_entitlement(alice.email, 500, 'pi_1')
    return alice


class TestParseInterests:

    def test_comma_string(self):
        assert parse_interests('gaming, tech ,,') == ['gaming', 'tech']

    def test_list_dedupes_case_insensitively(self):
        assert parse_interests(['Tech', 'tech', 'food']) == ['Tech', 'food']

    def test_none(self):
        assert parse_interests(None) == []

    def test_too_many(self):
        with pytest.raises(ValidationError):
            parse_interests([f'tag{i}' for i in range(21)])

    def test_wrong_type(self):
        with pytest.raises(ValidationError):
            parse_interests(42)


class TestBuildPost:

    def test_maps_fields(self, alice):
        post = build_post(alice, _fields())
        assert post.role == 'creator'
        assert post.platform == 'youtube'
        assert post.audience_size == 50000
        assert post.price == Decimal('500.00')
        assert post.interests == ['gaming', 'tech']
        assert post.owner_email == 'alice@example.com'

    def test_role_is_a_closed_enum(self, alice):
        with pytest.raises(ValidationError):
            build_post(alice, _fields(userType='agency'))

    def test_negative_followers(self, alice):
        with pytest.raises(ValidationError):
            build_post(alice, _fields(followers=-5))

    def test_followers_capped_at_column_limit(self, alice):
        assert build_post(alice, _fields(followers=2**31 - 1)).audience_size == 2**31 - 1
        with pytest.raises(ValidationError, match='followers must be at most'):
            build_post(alice, _fields(followers=10**20))

    def test_infinite_followers(self, alice):
        with pytest.raises(ValidationError):
            build_post(alice, _fields(followers=float('inf')))

    def test_price_capped_at_column_limit(self, alice):
        assert build_post(alice, _fields(pricePoint='99999999.99')).price == Decimal('99999999.99')
        with pytest.raises(ValidationError, match='pricePoint must be at most'):
            build_post(alice, _fields(pricePoint=Decimal('100000000')))
        with pytest.raises(ValidationError):
            build_post(alice, _fields(pricePoint='1e40'))

    def test_price_rounding_past_limit(self, alice):
        with pytest.raises(ValidationError):
            build_post(alice, _fields(pricePoint='99999999.999'))

    def test_nan_price(self, alice):
        with pytest.raises(ValidationError):
            build_post(alice, _fields(pricePoint='NaN'))

    def test_non_numeric_price(self, alice):
        with pytest.raises(ValidationError):
            build_post(alice, _fields(pricePoint='lots'))

    def test_description_required(self, alice):
        with pytest.raises(ValidationError):
            build_post(alice, _fields(description='  '))


class TestAuthorize:

    def test_without_entitlement_requires_payment(self, gate, alice):
        with pytest.raises(PaymentRequiredError) as exc:
            gate.authorize(alice, 'alice@example.com')
        body = exc.value.to_dict()
        assert body['requiresPayment'] is True
        assert body['paymentType'] == 'posting_fee'
        assert body['amount'] == 500

    def test_existing_post_rejected(self, gate, entitled, saved_post):
        saved_post(owner_email='alice@example.com')
        with pytest.raises(ValidationError, match='already have a post'):
            gate.authorize(entitled, 'alice@example.com')

    def test_contact_must_match_verified_email(self, gate, entitled):
        with pytest.raises(ValidationError, match='Contact info must match'):
            gate.authorize(entitled, 'someone-else@example.com')

    def test_contact_match_is_exact(self, gate, entitled):
        with pytest.raises(ValidationError):
            gate.authorize(entitled, 'Alice@Example.com')

    def test_passes(self, gate, entitled):
        gate.authorize(entitled, 'alice@example.com')


class TestCreatePost:

    def test_creates(self, gate, entitled, db_session):
        post = gate.create_post(entitled, _fields())
        assert post.id is not None
        assert db_session.query(Post).count() == 1

    def test_second_create_rejected(self, gate, entitled):
        gate.create_post(entitled, _fields())
        with pytest.raises(ValidationError):
            gate.create_post(entitled, _fields())

    def test_concurrent_creates_leave_one_post(self, entitled, db_session):
        """Both requests pass the existence check before either writes."""
        class StalePostStore(PostStore):
            def find_by_owner_email(self, email):
                return None

        gate = PostingGate(posts=StalePostStore())
        gate.create_post(entitled, _fields())
        with pytest.raises(ConflictError):
            gate.create_post(entitled, _fields(userType='sponsor'))
        assert db_session.query(Post).filter_by(owner_email='alice@example.com').count() == 1


class TestDeleteOwnPost:

    def test_deletes(self, gate, entitled, db_session):
        gate.create_post(entitled, _fields())
        gate.delete_own_post(entitled)
        assert db_session.query(Post).count() == 0

    def test_missing_post(self, gate, alice):
        with pytest.raises(NotFoundError):
            gate.delete_own_post(alice)

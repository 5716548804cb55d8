"""Tests for sponsorlink.services.reveal_gate — visibility, unlocks, masking."""
import pytest

from sponsorlink.errors import PaymentRequiredError, ValidationError
from sponsorlink.models.contact_reveal import ContactReveal
from sponsorlink.services.reveal_gate import MASKED_CONTACT, RevealGate, RevealReason, mask_contact


@pytest.fixture
def gate():
    return RevealGate(reveal_fee=100)


@pytest.fixture
def target(saved_post):
    return saved_post(owner_email='owner@example.com', contact='owner@example.com')


class TestMaskContact:

    def test_fixed_literal(self):
        assert mask_contact('someone@example.com') == '••••••••@••••••••.com'
        assert mask_contact('x@y.io') == MASKED_CONTACT

    def test_no_argument(self):
        assert mask_contact() == MASKED_CONTACT


class TestCanViewContact:

    def test_anonymous_is_hidden(self, gate, target, make_identity):
        gate.record_unlock(make_identity('buyer@example.com'), target, 100, 'pi_1')
        visibility = gate.can_view_contact(None, target)
        assert visibility.visible is False
        assert visibility.reason is RevealReason.HIDDEN

    def test_owner_always_visible(self, gate, target, make_identity):
        visibility = gate.can_view_contact(make_identity('owner@example.com'), target)
        assert visibility.visible is True
        assert visibility.reason is RevealReason.OWN_POST

    def test_stranger_hidden(self, gate, target, make_identity):
        assert gate.can_view_contact(make_identity('bob@example.com'), target).reason is RevealReason.HIDDEN

    def test_paid_after_unlock_only_for_that_viewer(self, gate, target, make_identity):
        buyer = make_identity('buyer@example.com')
        other = make_identity('other@example.com')
        gate.record_unlock(buyer, target, 100, 'pi_1')

        assert gate.can_view_contact(buyer, target).reason is RevealReason.PAID
        assert gate.can_view_contact(other, target).reason is RevealReason.HIDDEN

    def test_requires_payment(self, gate, target, make_identity):
        assert gate.requires_payment(make_identity('bob@example.com'), target) is True
        assert gate.requires_payment(make_identity('owner@example.com'), target) is False
        assert gate.requires_payment(None, target) is True


class TestRequireVisible:

    def test_raises_payment_required_with_payload(self, gate, target, make_identity):
        with pytest.raises(PaymentRequiredError) as exc:
            gate.require_visible(make_identity('bob@example.com'), target)
        body = exc.value.to_dict()
        assert exc.value.status_code == 402
        assert body['requiresPayment'] is True
        assert body['paymentType'] == 'contact_reveal'
        assert body['amount'] == 100
        assert body['targetPostId'] == target.id

    def test_owner_passes(self, gate, target, make_identity):
        assert gate.require_visible(make_identity('owner@example.com'), target).visible is True


class TestRecordUnlock:

    def test_idempotent(self, gate, target, make_identity, db_session):
        buyer = make_identity('buyer@example.com')
        first = gate.record_unlock(buyer, target, 100, 'pi_1')
        second = gate.record_unlock(buyer, target, 100, 'pi_1')

        assert first.already_unlocked is False
        assert second.already_unlocked is True
        assert first.visible and second.visible
        assert db_session.query(ContactReveal).count() == 1

    def test_duplicate_from_lost_race_is_success(self, gate, target, make_identity, db_session):
        buyer = make_identity('buyer@example.com')
        gate.record_unlock(buyer, target, 100, 'pi_1')
        # Simulate a stale read: the pre-check misses the existing row
        real_exists = gate.unlocks.exists
        calls = []

        def stale_exists(email, post_id):
            calls.append(1)
            return False if len(calls) == 1 else real_exists(email, post_id)

        gate.unlocks.exists = stale_exists
        result = gate.record_unlock(buyer, target, 100, 'pi_2')

        assert result.already_unlocked is True
        assert db_session.query(ContactReveal).count() == 1

    def test_to_dict(self, gate, target, make_identity):
        result = gate.record_unlock(make_identity('buyer@example.com'), target, 100, 'pi_1')
        assert result.to_dict() == {'targetPostId': target.id, 'alreadyUnlocked': False, 'visible': True}

    @pytest.mark.parametrize('amount, tx', [(None, 'pi_1'), (-1, 'pi_1'), (100, '')])
    def test_rejects_bad_input(self, gate, target, make_identity, amount, tx):
        with pytest.raises(ValidationError):
            gate.record_unlock(make_identity('buyer@example.com'), target, amount, tx)

    def test_rejects_missing_requester(self, gate, target):
        with pytest.raises(ValidationError):
            gate.record_unlock(None, target, 100, 'pi_1')


class TestPresent:

    def test_listing_masks_per_viewer(self, gate, saved_post, make_identity):
        own = saved_post(owner_email='alice@example.com')
        paid = saved_post(owner_email='paid@example.com', role='sponsor')
        hidden = saved_post(owner_email='hidden@example.com', role='sponsor')
        alice = make_identity('alice@example.com')
        gate.record_unlock(alice, paid, 100, 'pi_1')

        by_id = {p['id']: p for p in gate.present_many(alice, [own, paid, hidden])}

        assert by_id[own.id]['contactInfo'] == 'alice@example.com'
        assert by_id[own.id]['contactReason'] == 'OWN_POST'
        assert by_id[paid.id]['contactInfo'] == 'paid@example.com'
        assert by_id[paid.id]['contactReason'] == 'PAID'
        assert by_id[paid.id]['revealCost'] == 0
        assert by_id[hidden.id]['contactInfo'] == MASKED_CONTACT
        assert by_id[hidden.id]['contactHidden'] is True
        assert by_id[hidden.id]['revealCost'] == 1.0

    def test_anonymous_listing_all_masked(self, gate, target):
        [data] = gate.present_many(None, [target])
        assert data['contactInfo'] == MASKED_CONTACT

    def test_present_one(self, gate, target, make_identity):
        data, visibility = gate.present_one(make_identity('owner@example.com'), target)
        assert data['contactInfo'] == 'owner@example.com'
        assert visibility.reason is RevealReason.OWN_POST

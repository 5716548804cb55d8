"""
Payments — Stripe hosted checkout for the posting fee and contact reveals.

Flow:
  1. start_*_checkout() creates a Stripe checkout session and records it in
     payment_sessions as pending.
  2. The processor confirms payment through the success redirect
     (confirm_checkout) and/or the webhook (handle_webhook). Either path may
     fire, in any order, any number of times.
  3. fulfil() grants the posting entitlement or records the unlock. Both
     writes are insert-if-absent, so repeated confirmations converge on one
     fact and report the same outcome.
"""
import logging
from datetime import datetime, timezone

import stripe

from sponsorlink.config import BASE_URL, CURRENCY, PAYMENT_FEES, STRIPE_WEBHOOK_SECRET, PaymentPurpose, parse_enum
from sponsorlink.errors import NotFoundError, UpstreamError, ValidationError
from sponsorlink.models.payment_session import PaymentSession
from sponsorlink.services import accounts, notifications
from sponsorlink.services.circuit_breaker import CircuitOpenError, get_breaker
from sponsorlink.services.reveal_gate import Identity, RevealGate
from sponsorlink.services.stores import EntitlementStore, PostStore, UnlockStore, storage_session

logger = logging.getLogger('services.payments')

PRODUCT_NAMES = {
    PaymentPurpose.POSTING_FEE: ('Post Creation Fee', 'One-time fee to create and publish your post'),
    PaymentPurpose.CONTACT_REVEAL: ('Contact Reveal', 'Reveal contact information for {name}'),
}


def _stripe_call(func, *args, **kwargs):
    """Call Stripe through the breaker; processor errors become UpstreamError."""
    try:
        return get_breaker('stripe').call(func, *args, **kwargs)
    except CircuitOpenError:
        raise
    except stripe.StripeError as e:
        logger.error("Stripe call %s failed: %s", getattr(func, '__qualname__', func), e)
        raise UpstreamError('stripe', getattr(e, 'user_message', None) or str(e)) from e


class PaymentService:

    def __init__(self, posts=None, unlocks=None, entitlements=None, gate=None):
        self.posts = posts or PostStore()
        self.entitlements = entitlements or EntitlementStore()
        self.gate = gate or RevealGate(unlocks or UnlockStore())

    # ── Customers ─────────────────────────────────────────────────────

    def get_or_create_customer(self, identity):
        """Stripe customer id for the account, persisted on first creation."""
        account = accounts.get_account(identity.email)
        if account is None:
            raise NotFoundError('Account not found')
        if account.stripe_customer_id:
            return account.stripe_customer_id

        existing = _stripe_call(stripe.Customer.list, email=identity.email, limit=1)
        if existing.data:
            customer_id = existing.data[0].id
        else:
            customer = _stripe_call(
                stripe.Customer.create,
                email=identity.email,
                metadata={'account_id': identity.account_id},
            )
            customer_id = customer.id

        accounts.set_stripe_customer_id(identity.email, customer_id)
        return customer_id

    # ── Checkout ──────────────────────────────────────────────────────

    def _create_checkout(self, identity, purpose, target_post=None):
        amount = PAYMENT_FEES[purpose]
        name, description = PRODUCT_NAMES[purpose]
        metadata = {'payment_type': purpose.value, 'user_email': identity.email}
        success_url = f'{BASE_URL}/payment-success?session_id={{CHECKOUT_SESSION_ID}}&type={purpose.value}'
        if target_post is not None:
            metadata['target_post_id'] = str(target_post.id)
            description = description.format(name=target_post.name or 'selected user')
            success_url += f'&target={target_post.id}'

        session = _stripe_call(
            stripe.checkout.Session.create,
            mode='payment',
            payment_method_types=['card'],
            customer=self.get_or_create_customer(identity),
            line_items=[{
                'price_data': {
                    'currency': CURRENCY,
                    'product_data': {'name': name, 'description': description},
                    'unit_amount': amount,
                },
                'quantity': 1,
            }],
            metadata=metadata,
            success_url=success_url,
            cancel_url=f'{BASE_URL}/payment-cancelled?type={purpose.value}',
        )

        with storage_session('payments.record_session') as db:
            db.add(PaymentSession(
                id=session.id,
                payer_email=identity.email,
                purpose=purpose.value,
                amount=amount,
                target_post_id=target_post.id if target_post is not None else None,
                status='pending',
            ))
            db.commit()

        logger.info("Checkout session %s created", session.id,
                    extra={'viewer': identity.email, 'payment_purpose': purpose.value})
        return {'success': True, 'sessionId': session.id, 'sessionUrl': session.url, 'amount': amount / 100}

    def start_posting_checkout(self, identity):
        if self.entitlements.has_posting_entitlement(identity.email):
            return {'success': True, 'alreadyPaid': True}
        return self._create_checkout(identity, PaymentPurpose.POSTING_FEE)

    def start_reveal_checkout(self, identity, target_post_id):
        """Checkout for one reveal. Never charges for a contact already visible."""
        target = self._load_post(target_post_id)
        visibility = self.gate.can_view_contact(identity, target)
        if visibility.visible:
            return {'success': True, 'alreadyUnlocked': True, 'reason': visibility.reason.value}
        return self._create_checkout(identity, PaymentPurpose.CONTACT_REVEAL, target)

    # ── Confirmation ──────────────────────────────────────────────────

    def confirm_checkout(self, session_id):
        """Success-redirect path: verify with Stripe, then fulfil."""
        if not session_id:
            raise ValidationError('Session ID required')

        session = _stripe_call(stripe.checkout.Session.retrieve, session_id)
        if session.payment_status != 'paid':
            raise ValidationError('Payment not completed')

        with storage_session('payments.load_session') as db:
            record = db.get(PaymentSession, session_id)
        if record is None:
            raise ValidationError('Invalid session')

        return self.fulfil(
            purpose=record.purpose,
            email=record.payer_email,
            amount=record.amount,
            transaction_ref=session.payment_intent or session.id,
            target_post_id=record.target_post_id,
            session_id=session_id,
        )

    def handle_webhook(self, payload, signature):
        """Webhook path: verify signature, fulfil completed checkouts."""
        try:
            event = stripe.Webhook.construct_event(payload, signature, STRIPE_WEBHOOK_SECRET)
        except ValueError as e:
            raise ValidationError('Invalid webhook payload') from e
        except stripe.SignatureVerificationError as e:
            logger.warning("Webhook signature verification failed: %s", e)
            raise ValidationError('Invalid webhook signature') from e

        if event['type'] != 'checkout.session.completed':
            logger.info("Unhandled Stripe event type %s", event['type'])
            return {'received': True}

        session = event['data']['object']
        if session.get('payment_status') != 'paid':
            logger.info("Checkout %s completed without payment", session.get('id'))
            return {'received': True}

        metadata = session.get('metadata') or {}
        target = metadata.get('target_post_id')
        try:
            target_post_id = int(target) if target else None
        except (TypeError, ValueError):
            raise ValidationError('Invalid target post in payment metadata')
        result = self.fulfil(
            purpose=metadata.get('payment_type'),
            email=metadata.get('user_email'),
            amount=session.get('amount_total'),
            transaction_ref=session.get('payment_intent') or session.get('id'),
            target_post_id=target_post_id,
            session_id=session.get('id'),
        )
        return {'received': True, **result}

    def fulfil(self, purpose, email, amount, transaction_ref, target_post_id=None, session_id=None):
        """Apply a confirmed payment. Idempotent per (purpose, payer, target)."""
        purpose = parse_enum(PaymentPurpose, purpose, 'payment_type')
        if not email:
            raise ValidationError('Payer email missing from payment')
        if amount is None:
            amount = PAYMENT_FEES[purpose]

        account = accounts.get_account(email)
        if account is None:
            raise NotFoundError('Account not found')
        payer = Identity(account_id=account.id, email=account.email)

        if purpose is PaymentPurpose.POSTING_FEE:
            granted = self.entitlements.grant_posting_entitlement(email, amount, transaction_ref)
            result = {
                'success': True,
                'payment_type': purpose.value,
                'alreadyPaid': not granted.inserted,
                'message': 'Posting fee paid successfully! You can now create your post.',
            }
            newly_applied = granted.inserted
        else:
            if target_post_id is None:
                raise ValidationError('Target post missing from payment')
            target = self._load_post(target_post_id)
            unlock = self.gate.record_unlock(payer, target, amount, transaction_ref)
            result = {
                'success': True,
                'payment_type': purpose.value,
                'target_post_id': target.id,
                'alreadyUnlocked': unlock.already_unlocked,
                'message': 'Contact information unlocked! You can now view the contact details.',
            }
            newly_applied = not unlock.already_unlocked

        if session_id:
            self._mark_completed(session_id)
        if newly_applied:
            notifications.notify_payment_fulfilled(purpose.value, email, amount, target_post_id)
        return result

    def payment_status(self, identity):
        return {
            'hasPaidForPosting': self.entitlements.has_posting_entitlement(identity.email),
            'revealedContacts': sorted(self.gate.unlocks.unlocked_post_ids(identity.email)),
        }

    # ── Helpers ───────────────────────────────────────────────────────

    def _load_post(self, post_id):
        try:
            post_id = int(post_id)
        except (TypeError, ValueError):
            raise ValidationError('Target post ID is required')
        post = self.posts.get(post_id)
        if post is None:
            raise NotFoundError('Post not found')
        return post

    def _mark_completed(self, session_id):
        with storage_session('payments.mark_completed') as db:
            record = db.get(PaymentSession, session_id)
            if record is not None and record.status != 'completed':
                record.status = 'completed'
                record.completed_at = datetime.now(timezone.utc)
                db.commit()

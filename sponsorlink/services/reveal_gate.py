"""
Reveal gate — decides whether a viewer sees a post's real contact string.

Visibility of a post to a viewer:
  OWN_POST  viewer owns the post (computed per request, never stored)
  PAID      a paid unlock exists for (viewer email, post id)
  HIDDEN    everything else, including anonymous viewers

HIDDEN → PAID is one-way and happens only through record_unlock(). There is
no downgrade path. record_unlock() is idempotent: the storage uniqueness
constraint admits one fact per pair and a duplicate is reported as
already_unlocked, never as an error.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from sponsorlink.config import CONTACT_REVEAL_FEE, PaymentPurpose
from sponsorlink.errors import PaymentRequiredError, ValidationError
from sponsorlink.services.stores import UnlockStore

logger = logging.getLogger('services.reveal_gate')

MASKED_CONTACT = '••••••••@••••••••.com'


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, as resolved from a bearer credential."""
    account_id: str
    email: str


class RevealReason(str, enum.Enum):
    OWN_POST = 'OWN_POST'
    PAID = 'PAID'
    HIDDEN = 'HIDDEN'


@dataclass(frozen=True)
class ContactVisibility:
    visible: bool
    reason: RevealReason


@dataclass(frozen=True)
class UnlockResult:
    requester_email: str
    target_post_id: int
    already_unlocked: bool
    visible: bool = True

    def to_dict(self):
        return {
            'targetPostId': self.target_post_id,
            'alreadyUnlocked': self.already_unlocked,
            'visible': self.visible,
        }


_OWN = ContactVisibility(visible=True, reason=RevealReason.OWN_POST)
_PAID = ContactVisibility(visible=True, reason=RevealReason.PAID)
_HIDDEN = ContactVisibility(visible=False, reason=RevealReason.HIDDEN)


def mask_contact(real_contact: Optional[str] = None) -> str:
    """Fixed display placeholder. Does not derive anything from the address."""
    return MASKED_CONTACT


class RevealGate:

    def __init__(self, unlocks: UnlockStore = None, reveal_fee: int = CONTACT_REVEAL_FEE):
        self.unlocks = unlocks or UnlockStore()
        self.reveal_fee = reveal_fee

    def can_view_contact(self, viewer: Optional[Identity], target) -> ContactVisibility:
        if viewer is None or target is None:
            return _HIDDEN
        if viewer.email == target.owner_email:
            return _OWN
        if self.unlocks.exists(viewer.email, target.id):
            return _PAID
        return _HIDDEN

    def requires_payment(self, requester: Optional[Identity], target) -> bool:
        return not self.can_view_contact(requester, target).visible

    def require_visible(self, requester: Optional[Identity], target) -> ContactVisibility:
        """Visibility for an explicit reveal request; raises 402 when unpaid."""
        visibility = self.can_view_contact(requester, target)
        if not visibility.visible:
            raise PaymentRequiredError(
                'Payment required to reveal contact information',
                purpose=PaymentPurpose.CONTACT_REVEAL,
                amount=self.reveal_fee,
                targetPostId=target.id,
            )
        return visibility

    def record_unlock(self, requester: Identity, target, amount_paid: int, transaction_ref: str) -> UnlockResult:
        """
        Persist the paid unlock for (requester, target). Safe to call again for
        the same pair; later calls report already_unlocked=True.
        """
        if requester is None or not requester.email:
            raise ValidationError('Requester is required')
        if target is None or target.id is None:
            raise ValidationError('Target post is required')
        if amount_paid is None or int(amount_paid) < 0:
            raise ValidationError('Amount paid must be a non-negative integer')
        if not transaction_ref:
            raise ValidationError('Transaction reference is required')

        result = self.unlocks.insert_if_absent(requester.email, target.id, int(amount_paid), transaction_ref)
        if result.inserted:
            logger.info("Contact unlocked", extra={'viewer': requester.email, 'post_id': target.id})
        else:
            logger.info("Unlock already recorded, ignoring duplicate payment confirmation",
                        extra={'viewer': requester.email, 'post_id': target.id})

        return UnlockResult(
            requester_email=requester.email,
            target_post_id=target.id,
            already_unlocked=not result.inserted,
        )

    # ── Presentation helpers ──────────────────────────────────────────

    def visible_contacts(self, viewer: Optional[Identity], posts: Iterable) -> Dict[int, ContactVisibility]:
        """Batch can_view_contact over a listing: one unlock query per call."""
        posts = list(posts)
        if viewer is None:
            return {p.id: _HIDDEN for p in posts}

        unlocked = self.unlocks.unlocked_post_ids(viewer.email) if posts else set()
        result = {}
        for post in posts:
            if viewer.email == post.owner_email:
                result[post.id] = _OWN
            elif post.id in unlocked:
                result[post.id] = _PAID
            else:
                result[post.id] = _HIDDEN
        return result

    def present(self, post, visibility: ContactVisibility) -> Dict:
        """Serialize a post with the contact field gated by visibility."""
        data = post.to_dict()
        data['contactInfo'] = post.contact if visibility.visible else mask_contact(post.contact)
        data['contactHidden'] = not visibility.visible
        data['contactReason'] = visibility.reason.value
        data['revealCost'] = 0 if visibility.visible else self.reveal_fee / 100
        return data

    def present_many(self, viewer: Optional[Identity], posts: Iterable) -> list:
        posts = list(posts)
        visibility = self.visible_contacts(viewer, posts)
        return [self.present(p, visibility[p.id]) for p in posts]

    def present_one(self, viewer: Optional[Identity], post) -> Tuple[Dict, ContactVisibility]:
        visibility = self.can_view_contact(viewer, post)
        return self.present(post, visibility), visibility

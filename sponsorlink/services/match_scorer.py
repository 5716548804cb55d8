"""
Match scorer — compatibility between a post and opposite-role candidates.

Four weighted components (default weights sum to 100):
  interests  40  bidirectional case-insensitive substring overlap of tags
  budget     35  1 - |price diff| / max price
  platform   15  exact case-insensitive platform match
  audience   10  1 - |audience diff| / max audience

The total is rounded half-up to an integer in [0, 100]. Pure and total:
no I/O beyond the one-time weights load, no errors for degenerate input.
"""
import logging
import math
import os
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Sequence

import yaml

logger = logging.getLogger('services.match_scorer')

DEFAULT_LIMIT = 6


# ── Weights (YAML with hardcoded fallback) ───────────────────────────────────

_weights = None


def _default_weights() -> Dict[str, float]:
    return {'interests': 40, 'budget': 35, 'platform': 15, 'audience': 10}


def load_weights() -> Dict[str, float]:
    """Load component weights from YAML, cached, falling back to the defaults."""
    global _weights
    if _weights is not None:
        return _weights

    config_path = os.path.join(os.path.dirname(__file__), 'scoring_config.yaml')
    try:
        with open(config_path, 'r') as f:
            loaded = (yaml.safe_load(f) or {}).get('weights', {})
        weights = {k: float(loaded[k]) for k in _default_weights()}
        if not math.isclose(sum(weights.values()), 100.0):
            logger.warning("Weights in %s sum to %s, not 100; using defaults", config_path, sum(weights.values()))
            weights = _default_weights()
    except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError) as e:
        logger.warning("Scoring weights unavailable (%s), using defaults", e)
        weights = _default_weights()

    _weights = weights
    return _weights


# ── Result types ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ScoreBreakdown:
    interests: float
    budget: float
    platform: float
    audience: float
    total: int

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class Match:
    post: Any
    score: int


# ── Component functions ──────────────────────────────────────────────────────

def _normalize_tags(tags: Optional[Sequence[str]]) -> List[str]:
    """Lower-case, strip, drop blanks. Blank tags would match everything."""
    return [t.strip().lower() for t in (tags or []) if isinstance(t, str) and t.strip()]


def interest_overlap(subject_tags, candidate_tags) -> float:
    """
    Fraction of subject tags matched by some candidate tag, where a match is
    substring containment in either direction.

    Divided by the longer of the two lists, so extra unmatched candidate tags
    dilute the overlap too.
    """
    subject = _normalize_tags(subject_tags)
    candidate = _normalize_tags(candidate_tags)
    if not subject or not candidate:
        return 0.0

    matched = sum(
        1 for s in subject
        if any(c in s or s in c for c in candidate)
    )
    return matched / max(len(subject), len(candidate))


def ratio_compatibility(a, b) -> float:
    """
    Symmetric closeness of two non-negative quantities in [0, 1].

    Both zero counts as fully compatible.
    """
    a = float(a or 0)
    b = float(b or 0)
    top = max(a, b)
    if top <= 0:
        return 1.0
    return max(0.0, 1.0 - abs(a - b) / top)


def platforms_match(a, b) -> bool:
    a = getattr(a, 'value', a) or ''
    b = getattr(b, 'value', b) or ''
    return a.strip().lower() == b.strip().lower()


def _role(post):
    return getattr(post.role, 'value', post.role)


def round_half_up(value: float) -> int:
    # Epsilon absorbs float error on sums that are exactly .5 on paper
    return int(math.floor(value + 0.5 + 1e-9))


# ── Public API ───────────────────────────────────────────────────────────────

def score_breakdown(subject, candidate) -> ScoreBreakdown:
    """Weighted contribution of each component plus the rounded total."""
    weights = load_weights()

    interests = interest_overlap(subject.interests, candidate.interests) * weights['interests']

    # Budget only applies to a creator/sponsor pair
    if _role(subject) != _role(candidate):
        budget = ratio_compatibility(subject.price, candidate.price) * weights['budget']
    else:
        budget = 0.0

    platform = weights['platform'] if platforms_match(subject.platform, candidate.platform) else 0.0
    audience = ratio_compatibility(subject.audience_size, candidate.audience_size) * weights['audience']

    total = round_half_up(interests + budget + platform + audience)
    return ScoreBreakdown(
        interests=round(interests, 2),
        budget=round(budget, 2),
        platform=round(platform, 2),
        audience=round(audience, 2),
        total=max(0, min(100, total)),
    )


def score(subject, candidate) -> int:
    """Integer compatibility in [0, 100] between two opposite-role posts."""
    return score_breakdown(subject, candidate).total


def is_eligible(subject, candidate) -> bool:
    """Opposite role and not the subject itself (by id or by owner)."""
    if candidate is subject:
        return False
    if _role(candidate) == _role(subject):
        return False
    if subject.id is not None and candidate.id == subject.id:
        return False
    owner = getattr(subject, 'owner_email', None)
    if owner and getattr(candidate, 'owner_email', None) == owner:
        return False
    return True


def recommend(subject, pool: Sequence[Any], limit: int = DEFAULT_LIMIT) -> List[Match]:
    """
    Top-`limit` candidates by descending score.

    Ties keep the pool's order (sorted() is stable), so a most-recent-first
    pool yields most-recent-first ties. Ineligible candidates are dropped.
    """
    if limit is None:
        limit = DEFAULT_LIMIT
    if limit <= 0 or not pool:
        return []

    scored = [Match(post=c, score=score(subject, c)) for c in pool if is_eligible(subject, c)]
    ranked = sorted(scored, key=lambda m: m.score, reverse=True)

    logger.debug("Ranked %d of %d candidates for post %s", len(ranked), len(pool), subject.id)
    return ranked[:limit]

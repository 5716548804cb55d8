"""Tests for sponsorlink.services.match_scorer — component math, totals, ranking."""
from decimal import Decimal
from unittest.mock import patch

import pytest

import sponsorlink.services.match_scorer as mod
from sponsorlink.services.match_scorer import (
    interest_overlap, ratio_compatibility, platforms_match, round_half_up,
    score, score_breakdown, recommend, is_eligible, load_weights,
)


@pytest.fixture(autouse=True)
def _reset_weights():
    mod._weights = None
    yield
    mod._weights = None


@pytest.fixture
def creator(make_post):
    return make_post(
        id=1, owner_email='creator@example.com', role='creator',
        interests=['gaming', 'tech'], price=Decimal('500'), audience_size=50000, platform='youtube',
    )


def _sponsor(make_post, n, **overrides):
    fields = dict(
        id=100 + n, owner_email=f'sponsor{n}@example.com', owner_account_id=f'acct-s{n}',
        role='sponsor', interests=['technology'], price=Decimal('500'),
        audience_size=50000, platform='youtube',
    )
    fields.update(overrides)
    return make_post(**fields)


class TestInterestOverlap:

    def test_substring_matches_in_both_directions(self):
        assert interest_overlap(['tech'], ['technology']) == 1.0
        assert interest_overlap(['technology'], ['tech']) == 1.0

    def test_case_insensitive(self):
        assert interest_overlap(['Gaming'], ['GAMING']) == 1.0

    def test_divides_by_longer_list(self):
        # one of two subject tags matched, candidate has one tag
        assert interest_overlap(['gaming', 'tech'], ['technology']) == 0.5
        # all subject tags matched but candidate list is longer
        assert interest_overlap(['tech'], ['technology', 'food', 'travel', 'music']) == 0.25

    def test_empty_lists_score_zero(self):
        assert interest_overlap([], ['tech']) == 0.0
        assert interest_overlap(['tech'], []) == 0.0
        assert interest_overlap(None, None) == 0.0

    def test_blank_tags_are_ignored(self):
        assert interest_overlap(['', '  '], ['tech']) == 0.0


class TestRatioCompatibility:

    def test_equal_values(self):
        assert ratio_compatibility(500, 500) == 1.0

    def test_both_zero_is_fully_compatible(self):
        assert ratio_compatibility(0, 0) == 1.0

    def test_one_zero(self):
        assert ratio_compatibility(0, 100) == 0.0

    def test_symmetric(self):
        assert ratio_compatibility(100, 300) == ratio_compatibility(300, 100)
        assert ratio_compatibility(100, 300) == pytest.approx(1 / 3)

    def test_accepts_decimal(self):
        assert ratio_compatibility(Decimal('250.00'), Decimal('500.00')) == 0.5


class TestPlatformsMatch:

    def test_case_insensitive(self):
        assert platforms_match('YouTube', 'youtube') is True

    def test_different(self):
        assert platforms_match('youtube', 'tiktok') is False

    def test_missing(self):
        assert platforms_match(None, 'youtube') is False


class TestRoundHalfUp:

    def test_half_rounds_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(79.5) == 80

    def test_below_half_rounds_down(self):
        assert round_half_up(80.49) == 80


class TestScore:

    def test_reference_scenario_scores_80(self, make_post, creator):
        candidate = _sponsor(make_post, 1)
        breakdown = score_breakdown(creator, candidate)
        assert breakdown.interests == 20
        assert breakdown.budget == 35
        assert breakdown.platform == 15
        assert breakdown.audience == 10
        assert breakdown.total == 80
        assert score(creator, candidate) == 80

    def test_identical_fields_score_100(self, make_post, creator):
        candidate = _sponsor(make_post, 1, interests=['gaming', 'tech'])
        assert score(creator, candidate) == 100

    def test_disjoint_interests_and_platforms(self, make_post, creator):
        candidate = _sponsor(
            make_post, 1, interests=['cooking'], platform='tiktok', price=Decimal('1500'),
        )
        breakdown = score_breakdown(creator, candidate)
        assert breakdown.interests == 0
        assert breakdown.platform == 0
        # 1 - 1000/1500 = 1/3 of 35, plus full audience
        assert breakdown.total == round_half_up(35 / 3 + 10)
        assert breakdown.total == 22

    def test_price_term_symmetric(self, make_post, creator):
        candidate = _sponsor(make_post, 1, price=Decimal('200'))
        assert score_breakdown(creator, candidate).budget == score_breakdown(candidate, creator).budget

    def test_zero_price_and_audience_fully_compatible(self, make_post, creator):
        creator.price = Decimal('0')
        creator.audience_size = 0
        candidate = _sponsor(make_post, 1, price=Decimal('0'), audience_size=0, interests=[])
        breakdown = score_breakdown(creator, candidate)
        assert breakdown.budget == 35
        assert breakdown.audience == 10

    def test_budget_ignored_for_same_role(self, make_post, creator):
        other = make_post(id=2, owner_email='c2@example.com', role='creator')
        assert score_breakdown(creator, other).budget == 0

    def test_score_within_bounds(self, make_post, creator):
        for price in (0, 1, 499, 500, 10_000):
            s = score(creator, _sponsor(make_post, 1, price=Decimal(price)))
            assert 0 <= s <= 100


class TestIsEligible:

    def test_opposite_role_eligible(self, make_post, creator):
        assert is_eligible(creator, _sponsor(make_post, 1)) is True

    def test_same_role_excluded(self, make_post, creator):
        assert is_eligible(creator, make_post(id=2, owner_email='c2@example.com', role='creator')) is False

    def test_self_excluded(self, creator):
        assert is_eligible(creator, creator) is False

    def test_same_owner_excluded(self, make_post, creator):
        assert is_eligible(creator, _sponsor(make_post, 1, owner_email=creator.owner_email)) is False


class TestRecommend:

    def test_empty_pool(self, creator):
        assert recommend(creator, []) == []

    def test_sorted_descending(self, make_post, creator):
        low = _sponsor(make_post, 1, interests=['cooking'], platform='tiktok')
        high = _sponsor(make_post, 2)
        result = recommend(creator, [low, high])
        assert [m.post for m in result] == [high, low]
        assert result[0].score >= result[1].score

    def test_ties_keep_pool_order(self, make_post, creator):
        pool = [_sponsor(make_post, n) for n in range(4)]
        result = recommend(creator, pool)
        assert [m.post.id for m in result] == [100, 101, 102, 103]

    def test_limit(self, make_post, creator):
        pool = [_sponsor(make_post, n) for n in range(10)]
        assert len(recommend(creator, pool)) == 6
        assert len(recommend(creator, pool, limit=3)) == 3
        assert recommend(creator, pool, limit=0) == []

    def test_never_returns_same_role_or_self(self, make_post, creator):
        pool = [
            creator,
            make_post(id=2, owner_email='c2@example.com', role='creator'),
            _sponsor(make_post, 1),
        ]
        result = recommend(creator, pool)
        assert len(result) == 1
        assert all(m.post.role != creator.role for m in result)


class TestWeights:

    def test_defaults_sum_to_100(self):
        assert sum(load_weights().values()) == 100

    def test_bad_sum_falls_back_to_defaults(self):
        bad = {'weights': {'interests': 50, 'budget': 35, 'platform': 15, 'audience': 10}}
        with patch('sponsorlink.services.match_scorer.yaml.safe_load', return_value=bad):
            weights = load_weights()
        assert weights == {'interests': 40, 'budget': 35, 'platform': 15, 'audience': 10}

    def test_missing_key_falls_back_to_defaults(self):
        with patch('sponsorlink.services.match_scorer.yaml.safe_load', return_value={'weights': {'interests': 100}}):
            weights = load_weights()
        assert weights['budget'] == 35

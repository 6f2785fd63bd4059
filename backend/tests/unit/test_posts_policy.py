from decimal import Decimal
from uuid import uuid4

import pytest

from dealrate.domain.posts import models, policy
from dealrate.domain.posts.exceptions import InvalidArgument, InvalidTransition, SelfRatingForbidden
from dealrate.domain.posts.models import PostStatus
from dealrate.domain.posts.policy import QuotaPolicy


def _draft(**overrides) -> models.PostDraft:
	payload = {
		"title": "2014 Civic, 90k miles",
		"description": "Clean title, new brakes, asking well under book value.",
		"price": 850_000,
	}
	payload.update(overrides)
	return models.PostDraft(**payload)


@pytest.mark.parametrize("score", [1, 2, 3, 4, 5])
def test_validate_score_accepts_range(score):
	assert policy.validate_score(score) == score


@pytest.mark.parametrize("score", [0, 6, -1, 100])
def test_validate_score_rejects_out_of_range(score):
	with pytest.raises(InvalidArgument) as exc_info:
		policy.validate_score(score)
	assert exc_info.value.detail == "invalid_score"
	assert exc_info.value.message == "Rating must be 1-5."


@pytest.mark.parametrize("score", [True, 4.5, "5", None])
def test_validate_score_rejects_non_integers(score):
	with pytest.raises(InvalidArgument):
		policy.validate_score(score)


@pytest.mark.parametrize(
	("scores", "expected"),
	[
		([4, 4, 4, 5], Decimal("4.3")),
		([5, 5, 5, 5, 3], Decimal("4.6")),
		([1, 2], Decimal("1.5")),
		([5, 4, 4], Decimal("4.3")),
		([1, 1, 2], Decimal("1.3")),
		([3], Decimal("3.0")),
	],
)
def test_round_average_half_up(scores, expected):
	assert policy.round_average(sum(scores), len(scores)) == expected


def test_round_average_without_ratings_is_zero():
	assert policy.round_average(0, 0) == Decimal("0.0")


def test_mean_of_averages_ignores_empty():
	assert policy.mean_of_averages([]) == Decimal("0.0")
	assert policy.mean_of_averages([Decimal("4.0"), Decimal("4.5")]) == Decimal("4.3")


@pytest.mark.parametrize(
	("current", "new"),
	[(PostStatus.PENDING, PostStatus.LIVE), (PostStatus.LIVE, PostStatus.RATED)],
)
def test_allowed_transitions(current, new):
	policy.ensure_transition(current, new)


@pytest.mark.parametrize(
	("current", "new"),
	[
		(PostStatus.PENDING, PostStatus.RATED),
		(PostStatus.LIVE, PostStatus.PENDING),
		(PostStatus.RATED, PostStatus.LIVE),
		(PostStatus.RATED, PostStatus.PENDING),
		(PostStatus.LIVE, PostStatus.LIVE),
	],
)
def test_rejected_transitions(current, new):
	with pytest.raises(InvalidTransition):
		policy.ensure_transition(current, new)


def test_validate_draft_normalises_fields():
	clean = policy.validate_draft(
		_draft(
			title="  2014 Civic, 90k miles  ",
			currency_code="cad",
			category="Used_Cars",
			listing_url=" https://example.com/listing/1 ",
			image_url="",
		)
	)
	assert clean.title == "2014 Civic, 90k miles"
	assert clean.currency_code == "CAD"
	assert clean.category == "used_cars"
	assert clean.listing_url == "https://example.com/listing/1"
	assert clean.image_url is None


@pytest.mark.parametrize(
	("overrides", "detail"),
	[
		({"title": "Car"}, "title_too_short"),
		({"title": "x" * 101}, "title_too_long"),
		({"title": None}, "invalid_title"),
		({"description": "too short"}, "description_too_short"),
		({"description": "y" * 1001}, "description_too_long"),
		({"price": 99}, "price_too_low"),
		({"price": 1_000_000_001}, "price_too_high"),
		({"price": 12.5}, "invalid_price"),
		({"price": True}, "invalid_price"),
		({"currency_code": "dollars"}, "invalid_currency"),
		({"category": "cars & trucks"}, "invalid_category"),
		({"listing_url": "ftp://example.com/x"}, "invalid_listing_url"),
		({"image_url": "javascript:alert(1)"}, "invalid_image_url"),
	],
)
def test_validate_draft_rejections(overrides, detail):
	with pytest.raises(InvalidArgument) as exc_info:
		policy.validate_draft(_draft(**overrides))
	assert exc_info.value.detail == detail


def test_validate_draft_price_bounds_inclusive():
	assert policy.validate_draft(_draft(price=models.PRICE_MIN)).price == models.PRICE_MIN
	assert policy.validate_draft(_draft(price=models.PRICE_MAX)).price == models.PRICE_MAX


def test_guard_not_self():
	post = models.Post(
		id=uuid4(),
		user_id="abc",
		title="title",
		description="description",
		price=100,
		status=PostStatus.LIVE,
		average_rating=Decimal("0.0"),
		rating_count=0,
		created_at=None,
		updated_at=None,
	)
	with pytest.raises(SelfRatingForbidden):
		policy.guard_not_self("abc", post)
	policy.guard_not_self("def", post)


def test_page_window():
	assert policy.page_window(0, 10) == (0, 10)
	assert policy.page_window(3, 10) == (30, 10)
	with pytest.raises(InvalidArgument):
		policy.page_window(-1, 10)


def test_normalise_search():
	assert policy.normalise_search(None) is None
	assert policy.normalise_search("   ") is None
	assert policy.normalise_search(" civic ") == "civic"


def test_quota_policy_rejects_non_positive_values():
	with pytest.raises(ValueError):
		QuotaPolicy(publish_quota=0)
	assert QuotaPolicy(rated_threshold=3).is_settled(3)
	assert not QuotaPolicy(rated_threshold=3).is_settled(2)

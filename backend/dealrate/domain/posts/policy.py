"""Pure business rules: validation, quota policy, transitions and averaging."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from dealrate.domain.posts import models
from dealrate.domain.posts.exceptions import InvalidArgument, InvalidTransition, SelfRatingForbidden
from dealrate.domain.posts.models import PostStatus
from dealrate.settings import settings

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
_CATEGORY_RE = re.compile(r"^[a-z0-9_]{1,40}$")
_ONE_PLACE = Decimal("0.1")

ALLOWED_TRANSITIONS: dict[PostStatus, frozenset[PostStatus]] = {
	PostStatus.PENDING: frozenset({PostStatus.LIVE}),
	PostStatus.LIVE: frozenset({PostStatus.RATED}),
	PostStatus.RATED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class QuotaPolicy:
	"""How many ratings unlock publication and how many settle a post."""

	publish_quota: int = models.DEFAULT_PUBLISH_QUOTA
	rated_threshold: int = models.DEFAULT_RATED_THRESHOLD
	page_size: int = models.PAGE_SIZE

	def __post_init__(self) -> None:
		if self.publish_quota < 1 or self.rated_threshold < 1 or self.page_size < 1:
			raise ValueError("quota policy values must be positive")

	@classmethod
	def from_settings(cls) -> "QuotaPolicy":
		return cls(
			publish_quota=settings.publish_quota,
			rated_threshold=settings.rated_threshold,
			page_size=settings.page_size,
		)

	def is_settled(self, rating_count: int) -> bool:
		return rating_count >= self.rated_threshold


def validate_score(score: object) -> int:
	# bool is an int subclass; True must not count as a score of 1
	if isinstance(score, bool) or not isinstance(score, int):
		raise InvalidArgument("invalid_score", "Rating must be a whole number from 1 to 5.")
	if score < models.MIN_SCORE or score > models.MAX_SCORE:
		raise InvalidArgument("invalid_score", "Rating must be 1-5.")
	return score


def _validate_text(value: object, *, field: str, label: str, min_length: int, max_length: int) -> str:
	if not isinstance(value, str):
		raise InvalidArgument(f"invalid_{field}", f"{label} is required.")
	text = value.strip()
	if len(text) < min_length:
		raise InvalidArgument(f"{field}_too_short", f"{label} must be at least {min_length} characters.")
	if len(text) > max_length:
		raise InvalidArgument(f"{field}_too_long", f"{label} must be under {max_length} characters.")
	return text


def _validate_url(value: Optional[str], *, field: str) -> Optional[str]:
	if value is None:
		return None
	url = value.strip()
	if not url:
		return None
	if len(url) > models.URL_MAX_LENGTH or not url.lower().startswith(("http://", "https://")):
		raise InvalidArgument(f"invalid_{field}", "Links must be http(s) URLs.")
	return url


def validate_draft(draft: models.PostDraft) -> models.PostDraft:
	"""Return a normalised copy of ``draft`` or raise ``InvalidArgument``."""
	title = _validate_text(
		draft.title,
		field="title",
		label="Title",
		min_length=models.TITLE_MIN_LENGTH,
		max_length=models.TITLE_MAX_LENGTH,
	)
	description = _validate_text(
		draft.description,
		field="description",
		label="Description",
		min_length=models.DESCRIPTION_MIN_LENGTH,
		max_length=models.DESCRIPTION_MAX_LENGTH,
	)
	price = draft.price
	if isinstance(price, bool) or not isinstance(price, int):
		raise InvalidArgument("invalid_price", "Price must be a whole number of cents.")
	if price < models.PRICE_MIN:
		raise InvalidArgument("price_too_low", "Price must be at least $1.")
	if price > models.PRICE_MAX:
		raise InvalidArgument("price_too_high", "Price must be under $10,000,000.")
	currency = (draft.currency_code or models.DEFAULT_CURRENCY).strip().upper()
	if not _CURRENCY_RE.match(currency):
		raise InvalidArgument("invalid_currency", "Currency must be a three-letter code.")
	category = (draft.category or models.DEFAULT_CATEGORY).strip().lower()
	if not _CATEGORY_RE.match(category):
		raise InvalidArgument("invalid_category", "Unknown category.")
	return models.PostDraft(
		title=title,
		description=description,
		price=price,
		currency_code=currency,
		listing_url=_validate_url(draft.listing_url, field="listing_url"),
		image_url=_validate_url(draft.image_url, field="image_url"),
		category=category,
	)


def guard_not_self(rater_id: str, post: models.Post) -> None:
	if str(post.user_id) == str(rater_id):
		raise SelfRatingForbidden()


def ensure_transition(current: PostStatus, new: PostStatus) -> None:
	if new not in ALLOWED_TRANSITIONS[current]:
		raise InvalidTransition(f"invalid_transition:{current.value}->{new.value}")


def round_average(total: int, count: int) -> Decimal:
	"""Mean of ``count`` scores summing to ``total``, rounded half-up to one place."""
	if count <= 0:
		return Decimal("0.0")
	return (Decimal(total) / Decimal(count)).quantize(_ONE_PLACE, rounding=ROUND_HALF_UP)


def mean_of_averages(averages: list[Decimal]) -> Decimal:
	if not averages:
		return Decimal("0.0")
	return (sum(averages, Decimal(0)) / Decimal(len(averages))).quantize(_ONE_PLACE, rounding=ROUND_HALF_UP)


def normalise_search(term: Optional[str]) -> Optional[str]:
	if term is None:
		return None
	cleaned = term.strip()
	return cleaned or None


def page_window(page: int, page_size: int) -> tuple[int, int]:
	"""Return ``(offset, limit)`` for a zero-based page number."""
	if isinstance(page, bool) or not isinstance(page, int) or page < 0:
		raise InvalidArgument("invalid_page", "Page must be a non-negative integer.")
	return page * page_size, page_size

"""Domain models for posts, ratings and the publish quota."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID


class PostStatus(str, Enum):
	"""Lifecycle states of a post."""

	PENDING = "pending"
	LIVE = "live"
	RATED = "rated"


DEFAULT_PUBLISH_QUOTA = 2
DEFAULT_RATED_THRESHOLD = 5
PAGE_SIZE = 10

MIN_SCORE = 1
MAX_SCORE = 5

TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 100
DESCRIPTION_MIN_LENGTH = 20
DESCRIPTION_MAX_LENGTH = 1000
# Minor currency units: $1 .. $10,000,000
PRICE_MIN = 100
PRICE_MAX = 1_000_000_000
URL_MAX_LENGTH = 2048

DEFAULT_CURRENCY = "USD"
DEFAULT_CATEGORY = "used_cars"


@dataclass(slots=True)
class PostDraft:
	"""Author-supplied fields of a new post."""

	title: str
	description: str
	price: int
	currency_code: str = DEFAULT_CURRENCY
	listing_url: Optional[str] = None
	image_url: Optional[str] = None
	category: str = DEFAULT_CATEGORY


@dataclass(slots=True)
class Post:
	id: UUID
	user_id: str
	title: str
	description: str
	price: int
	status: PostStatus
	average_rating: Decimal
	rating_count: int
	created_at: datetime
	updated_at: datetime
	currency_code: str = DEFAULT_CURRENCY
	listing_url: Optional[str] = None
	image_url: Optional[str] = None
	category: str = DEFAULT_CATEGORY
	rating_breakdown: Optional[dict[int, int]] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Post":
		return cls(
			id=UUID(str(record["id"])),
			user_id=str(record["user_id"]),
			title=record["title"],
			description=record["description"],
			price=int(record["price"]),
			status=PostStatus(record["status"]),
			average_rating=Decimal(str(record["average_rating"])),
			rating_count=int(record["rating_count"]),
			created_at=record["created_at"],
			updated_at=record["updated_at"],
			currency_code=record["currency_code"],
			listing_url=record.get("listing_url"),
			image_url=record.get("image_url"),
			category=record["category"],
		)


@dataclass(slots=True)
class Rating:
	"""A single score; (post_id, user_id) is unique and the row is never mutated."""

	post_id: UUID
	user_id: str
	score: int
	created_at: datetime

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Rating":
		return cls(
			post_id=UUID(str(record["post_id"])),
			user_id=str(record["user_id"]),
			score=int(record["score"]),
			created_at=record["created_at"],
		)


@dataclass(slots=True)
class UserQuota:
	"""Quota-relevant fields of a user.

	``ratings_needed_to_publish`` only means something while ``pending_post_id``
	is set; zero means nothing is gated.
	"""

	id: str
	pending_post_id: Optional[UUID] = None
	ratings_needed_to_publish: int = 0
	total_ratings_given: int = 0
	created_at: Optional[datetime] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "UserQuota":
		pending = record.get("pending_post_id")
		return cls(
			id=str(record["id"]),
			pending_post_id=UUID(str(pending)) if pending else None,
			ratings_needed_to_publish=int(record["ratings_needed_to_publish"]),
			total_ratings_given=int(record["total_ratings_given"]),
			created_at=record.get("created_at"),
		)


@dataclass(slots=True)
class PostPage:
	posts: list[Post] = field(default_factory=list)
	next_page: Optional[int] = None


@dataclass(slots=True)
class RatingOutcome:
	"""Everything a committed rating changed."""

	rating: Rating
	post: Post
	settled: bool = False
	published_post: Optional[Post] = None


@dataclass(slots=True)
class UserProfile:
	quota: UserQuota
	total_posts: int
	average_rating: Decimal
	name: Optional[str] = None

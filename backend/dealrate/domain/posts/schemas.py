"""Pydantic schemas for the posts and ratings HTTP surface (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from dealrate.domain.posts import models


class _CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PostCreateRequest(_CamelModel):
	title: str = Field(..., description="Listing title")
	description: str = Field(..., description="Why this might be a good deal")
	price: StrictInt = Field(..., description="Price in minor currency units (cents)")
	currency_code: Optional[str] = Field(default=None, description="ISO 4217 code, defaults to USD")
	listing_url: Optional[str] = Field(default=None, description="Source listing link")
	image_url: Optional[str] = Field(default=None, description="Already-uploaded image URL")
	category: Optional[str] = Field(default=None)

	def to_draft(self) -> models.PostDraft:
		return models.PostDraft(
			title=self.title,
			description=self.description,
			price=self.price,
			currency_code=self.currency_code or models.DEFAULT_CURRENCY,
			listing_url=self.listing_url,
			image_url=self.image_url,
			category=self.category or models.DEFAULT_CATEGORY,
		)


class PostSummary(_CamelModel):
	id: UUID
	user_id: str
	title: str
	description: str
	price: int
	currency_code: str
	listing_url: Optional[str] = None
	image_url: Optional[str] = None
	category: str
	status: Literal["pending", "live", "rated"]
	average_rating: float
	rating_count: int
	rating_breakdown: Optional[dict[int, int]] = None
	created_at: datetime
	updated_at: datetime

	@classmethod
	def from_post(cls, post: models.Post) -> "PostSummary":
		return cls(
			id=post.id,
			user_id=post.user_id,
			title=post.title,
			description=post.description,
			price=post.price,
			currency_code=post.currency_code,
			listing_url=post.listing_url,
			image_url=post.image_url,
			category=post.category,
			status=post.status.value,
			average_rating=float(post.average_rating),
			rating_count=post.rating_count,
			rating_breakdown=post.rating_breakdown,
			created_at=post.created_at,
			updated_at=post.updated_at,
		)


class PostEnvelope(_CamelModel):
	post: PostSummary


class PostListResponse(_CamelModel):
	posts: list[PostSummary]
	next_page: Optional[int] = None

	@classmethod
	def from_page(cls, page: models.PostPage) -> "PostListResponse":
		return cls(posts=[PostSummary.from_post(post) for post in page.posts], next_page=page.next_page)


class RatingCreateRequest(_CamelModel):
	post_id: UUID
	# Range is checked by the domain so out-of-range scores share its error shape.
	rating: StrictInt


class RatingSummary(_CamelModel):
	post_id: UUID
	user_id: str
	rating: int
	created_at: datetime


class RatingEnvelope(_CamelModel):
	rating: RatingSummary
	post: PostSummary
	published_post_id: Optional[UUID] = None

	@classmethod
	def from_outcome(cls, outcome: models.RatingOutcome) -> "RatingEnvelope":
		published = outcome.published_post
		return cls(
			rating=RatingSummary(
				post_id=outcome.rating.post_id,
				user_id=outcome.rating.user_id,
				rating=outcome.rating.score,
				created_at=outcome.rating.created_at,
			),
			post=PostSummary.from_post(outcome.post),
			published_post_id=published.id if published is not None else None,
		)


class UserProfileSummary(_CamelModel):
	id: str
	name: Optional[str] = None
	pending_post_id: Optional[UUID] = None
	ratings_needed_to_publish: int
	total_ratings_given: int
	total_posts: int
	average_rating: float


class UserEnvelope(_CamelModel):
	user: UserProfileSummary

	@classmethod
	def from_profile(cls, profile: models.UserProfile) -> "UserEnvelope":
		quota = profile.quota
		return cls(
			user=UserProfileSummary(
				id=quota.id,
				name=profile.name,
				pending_post_id=quota.pending_post_id,
				ratings_needed_to_publish=quota.ratings_needed_to_publish,
				total_ratings_given=quota.total_ratings_given,
				total_posts=profile.total_posts,
				average_rating=float(profile.average_rating),
			)
		)

"""Request-level facade over the lifecycle manager and rating aggregator.

Each public method opens exactly one unit of work. Audit events and metrics
are emitted only after that unit has committed.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from dealrate.domain.posts import audit, models, policy
from dealrate.domain.posts import repo as repo_module
from dealrate.domain.posts.aggregator import RatingAggregator
from dealrate.domain.posts.exceptions import NotFoundError, PostsError
from dealrate.domain.posts.lifecycle import PostLifecycleManager
from dealrate.domain.posts.models import PostStatus
from dealrate.domain.posts.policy import QuotaPolicy

logger = logging.getLogger(__name__)


class PostsService:
	"""Implements the post and rating operations exposed over HTTP."""

	def __init__(
		self,
		uow_factory: repo_module.UnitOfWorkFactory | None = None,
		quota_policy: QuotaPolicy | None = None,
	) -> None:
		self.uow_factory = uow_factory or repo_module.unit_of_work
		self.lifecycle = PostLifecycleManager(quota_policy)
		self.aggregator = RatingAggregator(self.lifecycle)

	@property
	def policy(self) -> QuotaPolicy:
		return self.lifecycle.policy

	# ------------------------------------------------------------------
	# Posts

	async def create_post(self, author_id: str, draft: models.PostDraft) -> models.Post:
		try:
			async with self.uow_factory() as repo:
				post = await self.lifecycle.create_post(repo, author_id, draft)
		except PostsError as exc:
			audit.inc_create_reject(exc.detail)
			raise
		audit.inc_post_created()
		await audit.log_post_event(
			"created",
			{"post_id": str(post.id), "user_id": author_id, "status": post.status.value},
		)
		return post

	async def get_post(self, post_id: UUID, *, viewer_id: Optional[str] = None) -> models.Post:
		"""Fetch one post with its rating breakdown.

		Pending posts are visible to their author only; anyone else gets ``NotFound``.
		"""
		async with self.uow_factory() as repo:
			post = await self.lifecycle.get_post(repo, post_id)
			if post.status is PostStatus.PENDING and viewer_id is not None and post.user_id != viewer_id:
				raise NotFoundError()
			post.rating_breakdown = await repo.get_rating_breakdown(post.id)
		return post

	async def list_posts(self, owner_id: str, *, search: Optional[str] = None, page: int = 0) -> models.PostPage:
		async with self.uow_factory() as repo:
			return await self.aggregator.list_posts(repo, owner_id, search=search, page=page)

	async def list_ratable_posts(self, user_id: str, *, page: int = 0) -> models.PostPage:
		async with self.uow_factory() as repo:
			return await self.aggregator.list_ratable_posts(repo, user_id, page=page)

	# ------------------------------------------------------------------
	# Ratings

	async def submit_rating(self, rater_id: str, post_id: UUID, score: object) -> models.RatingOutcome:
		try:
			async with self.uow_factory() as repo:
				outcome = await self.aggregator.submit_rating(repo, rater_id, post_id, score)
		except PostsError as exc:
			audit.inc_rating(exc.detail)
			raise

		audit.inc_rating("accepted", outcome.rating.score)
		await audit.log_rating_event(
			"submitted",
			{
				"post_id": str(post_id),
				"user_id": rater_id,
				"score": str(outcome.rating.score),
				"rating_count": str(outcome.post.rating_count),
				"average_rating": str(outcome.post.average_rating),
			},
		)
		if outcome.settled:
			audit.inc_transition(PostStatus.RATED.value)
			await audit.log_post_event(
				"rated",
				{"post_id": str(outcome.post.id), "rating_count": str(outcome.post.rating_count)},
			)
		if outcome.published_post is not None:
			audit.inc_transition(PostStatus.LIVE.value)
			await audit.log_post_event(
				"published",
				{"post_id": str(outcome.published_post.id), "user_id": rater_id},
			)
		return outcome

	# ------------------------------------------------------------------
	# Users

	async def get_profile(self, user_id: str, *, name: Optional[str] = None) -> models.UserProfile:
		async with self.uow_factory() as repo:
			quota = await repo.get_user(user_id)
			total_posts, averages = await repo.post_stats(user_id)
		return models.UserProfile(
			quota=quota,
			total_posts=total_posts,
			average_rating=policy.mean_of_averages(averages),
			name=name,
		)

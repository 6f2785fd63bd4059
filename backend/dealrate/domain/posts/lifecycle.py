"""Post lifecycle: creation, status transitions and the publish quota.

State machine::

	pending --[author's quota reaches 0]--> live --[rating_count >= threshold]--> rated

Nothing returns to ``pending`` and ``rated`` is terminal. The only way out of
``pending`` is :meth:`PostLifecycleManager.on_rater_quota_progress`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from dealrate.domain.posts import models, policy
from dealrate.domain.posts.exceptions import NotFoundError, PendingPostExists
from dealrate.domain.posts.models import PostStatus
from dealrate.domain.posts.policy import QuotaPolicy
from dealrate.domain.posts.repo import PostsRepository

logger = logging.getLogger(__name__)


def _now() -> datetime:
	return datetime.now(timezone.utc)


class PostLifecycleManager:
	def __init__(self, quota_policy: QuotaPolicy | None = None) -> None:
		self.policy = quota_policy or QuotaPolicy.from_settings()

	async def create_post(self, repo: PostsRepository, author_id: str, draft: models.PostDraft) -> models.Post:
		"""Persist ``draft`` as the author's pending post and arm their quota."""
		clean = policy.validate_draft(draft)
		author = await repo.get_user(author_id, for_update=True)
		if author.pending_post_id is not None:
			raise PendingPostExists()

		now = _now()
		post = await repo.upsert_post(
			models.Post(
				id=uuid4(),
				user_id=author_id,
				title=clean.title,
				description=clean.description,
				price=clean.price,
				status=PostStatus.PENDING,
				average_rating=Decimal("0.0"),
				rating_count=0,
				created_at=now,
				updated_at=now,
				currency_code=clean.currency_code,
				listing_url=clean.listing_url,
				image_url=clean.image_url,
				category=clean.category,
			)
		)
		author.pending_post_id = post.id
		author.ratings_needed_to_publish = self.policy.publish_quota
		await repo.update_user_quota(author)
		logger.info(
			"post_created",
			extra={"post_id": str(post.id), "ratings_needed": self.policy.publish_quota},
		)
		return post

	async def get_post(self, repo: PostsRepository, post_id: UUID, *, for_update: bool = False) -> models.Post:
		post = await repo.get_post(post_id, for_update=for_update)
		if post is None:
			raise NotFoundError()
		return post

	async def update_post_status(
		self,
		repo: PostsRepository,
		post: models.Post,
		new_status: PostStatus,
	) -> models.Post:
		"""Apply an internal transition; anything off the graph is ``InvalidTransition``."""
		policy.ensure_transition(post.status, new_status)
		previous = post.status
		post.status = new_status
		post.updated_at = _now()
		saved = await repo.upsert_post(post)
		logger.info(
			"post_status_changed",
			extra={"post_id": str(post.id), "from_status": previous.value, "to_status": new_status.value},
		)
		return saved

	async def settle_if_threshold(self, repo: PostsRepository, post: models.Post) -> models.Post:
		if post.status is PostStatus.LIVE and self.policy.is_settled(post.rating_count):
			return await self.update_post_status(repo, post, PostStatus.RATED)
		return post

	async def on_rater_quota_progress(self, repo: PostsRepository, rater_id: str) -> Optional[models.Post]:
		"""Count one recorded rating against the rater's quota.

		Returns the rater's post if this rating published it.
		"""
		rater = await repo.get_user(rater_id, for_update=True)
		published: Optional[models.Post] = None
		if rater.pending_post_id is not None and rater.ratings_needed_to_publish > 0:
			rater.ratings_needed_to_publish -= 1
			rater.total_ratings_given += 1
			if rater.ratings_needed_to_publish == 0:
				pending = await repo.get_post(rater.pending_post_id, for_update=True)
				if pending is None:
					logger.error(
						"pending_post_missing",
						extra={"post_id": str(rater.pending_post_id)},
					)
				else:
					published = await self.update_post_status(repo, pending, PostStatus.LIVE)
				rater.pending_post_id = None
		await repo.update_user_quota(rater)
		return published

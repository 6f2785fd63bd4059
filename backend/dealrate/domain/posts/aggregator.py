"""Rating aggregation and the listing queries that feed it."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from dealrate.domain.posts import models, policy
from dealrate.domain.posts.exceptions import AlreadyRated, PostNotRatable
from dealrate.domain.posts.lifecycle import PostLifecycleManager
from dealrate.domain.posts.models import PostStatus
from dealrate.domain.posts.repo import PostsRepository

logger = logging.getLogger(__name__)


class RatingAggregator:
	"""Records ratings and keeps ``average_rating``/``rating_count`` exact.

	The caller owns the transaction; every write here happens on ``repo``.
	"""

	def __init__(self, lifecycle: PostLifecycleManager) -> None:
		self.lifecycle = lifecycle
		self.policy = lifecycle.policy

	async def submit_rating(
		self,
		repo: PostsRepository,
		rater_id: str,
		post_id: UUID,
		score: object,
	) -> models.RatingOutcome:
		value = policy.validate_score(score)
		# Row lock serialises concurrent recomputation of this post's aggregates.
		post = await self.lifecycle.get_post(repo, post_id, for_update=True)
		policy.guard_not_self(rater_id, post)
		if await repo.has_rating(post.id, rater_id):
			raise AlreadyRated()
		if post.status is not PostStatus.LIVE:
			raise PostNotRatable()

		await repo.get_user(rater_id, for_update=True)
		rating = await repo.insert_rating_if_absent(post.id, rater_id, value)
		if rating is None:
			raise AlreadyRated()

		count, total = await repo.rating_totals(post.id)
		post.rating_count = count
		post.average_rating = policy.round_average(total, count)
		post.updated_at = datetime.now(timezone.utc)
		post = await repo.upsert_post(post)

		status_before = post.status
		post = await self.lifecycle.settle_if_threshold(repo, post)
		settled = post.status is not status_before
		published = await self.lifecycle.on_rater_quota_progress(repo, rater_id)
		logger.info(
			"rating_recorded",
			extra={
				"post_id": str(post.id),
				"score": value,
				"rating_count": count,
				"average_rating": str(post.average_rating),
			},
		)
		return models.RatingOutcome(
			rating=rating,
			post=post,
			settled=settled,
			published_post=published,
		)

	async def list_ratable_posts(self, repo: PostsRepository, user_id: str, page: int = 0) -> models.PostPage:
		"""Live posts by other users that ``user_id`` has not rated yet."""
		offset, limit = policy.page_window(page, self.policy.page_size)
		rows = await repo.list_ratable_posts(user_id, limit=limit + 1, offset=offset)
		return _paginate(rows, page, limit)

	async def list_posts(
		self,
		repo: PostsRepository,
		owner_id: str,
		search: Optional[str] = None,
		page: int = 0,
	) -> models.PostPage:
		offset, limit = policy.page_window(page, self.policy.page_size)
		rows = await repo.list_user_posts(
			owner_id,
			search=policy.normalise_search(search),
			limit=limit + 1,
			offset=offset,
		)
		return _paginate(rows, page, limit)


def _paginate(rows: list[models.Post], page: int, limit: int) -> models.PostPage:
	# One extra row was requested as a sentinel for "has more".
	if len(rows) > limit:
		return models.PostPage(posts=rows[:limit], next_page=page + 1)
	return models.PostPage(posts=rows, next_page=None)

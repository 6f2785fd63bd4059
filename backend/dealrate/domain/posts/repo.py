"""Transactional store for posts, ratings and user quotas.

A unit of work is one asyncpg transaction. Every request-level operation opens
exactly one, so rating insertion, aggregate recomputation and quota progress
commit or roll back together.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncContextManager, AsyncIterator, Callable, Optional, Protocol
from uuid import UUID

import asyncpg

from dealrate.domain.posts import models
from dealrate.domain.posts.exceptions import NotFoundError, PendingPostExists
from dealrate.infra.postgres import get_pool


class PostsRepository(Protocol):
	"""Operations the lifecycle manager and aggregator need from a store."""

	async def get_post(self, post_id: UUID, *, for_update: bool = False) -> Optional[models.Post]: ...

	async def upsert_post(self, post: models.Post) -> models.Post: ...

	async def get_rating_breakdown(self, post_id: UUID) -> dict[int, int]: ...

	async def has_rating(self, post_id: UUID, user_id: str) -> bool: ...

	async def insert_rating_if_absent(self, post_id: UUID, user_id: str, score: int) -> Optional[models.Rating]: ...

	async def rating_totals(self, post_id: UUID) -> tuple[int, int]: ...

	async def get_user(self, user_id: str, *, for_update: bool = False) -> models.UserQuota: ...

	async def update_user_quota(self, user: models.UserQuota) -> models.UserQuota: ...

	async def list_user_posts(
		self, owner_id: str, *, search: Optional[str], limit: int, offset: int
	) -> list[models.Post]: ...

	async def list_ratable_posts(self, user_id: str, *, limit: int, offset: int) -> list[models.Post]: ...

	async def post_stats(self, user_id: str) -> tuple[int, list[Decimal]]: ...


UnitOfWorkFactory = Callable[[], AsyncContextManager[PostsRepository]]


def _escape_like(term: str) -> str:
	return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


_UPSERT_POST_SQL = """
INSERT INTO posts (id, user_id, title, description, price, currency_code, listing_url, image_url,
	category, status, average_rating, rating_count, created_at, updated_at)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14)
ON CONFLICT (id) DO UPDATE SET
	status = EXCLUDED.status,
	average_rating = EXCLUDED.average_rating,
	rating_count = EXCLUDED.rating_count,
	updated_at = EXCLUDED.updated_at
RETURNING *
"""

_RATABLE_POSTS_SQL = """
SELECT p.* FROM posts p
WHERE p.status = 'live'
	AND p.user_id <> $1
	AND NOT EXISTS (SELECT 1 FROM ratings r WHERE r.post_id = p.id AND r.user_id = $1)
ORDER BY p.created_at DESC, p.id DESC
LIMIT $2 OFFSET $3
"""


class PostgresUnitOfWork:
	"""Repository bound to a single connection inside an open transaction."""

	def __init__(self, conn: asyncpg.Connection) -> None:
		self.conn = conn

	# --- Posts ------------------------------------------------------------

	async def get_post(self, post_id: UUID, *, for_update: bool = False) -> Optional[models.Post]:
		query = "SELECT * FROM posts WHERE id = $1"
		if for_update:
			query += " FOR UPDATE"
		record = await self.conn.fetchrow(query, post_id)
		return models.Post.from_record(record) if record else None

	async def upsert_post(self, post: models.Post) -> models.Post:
		try:
			record = await self.conn.fetchrow(
				_UPSERT_POST_SQL,
				post.id,
				post.user_id,
				post.title,
				post.description,
				post.price,
				post.currency_code,
				post.listing_url,
				post.image_url,
				post.category,
				post.status.value,
				post.average_rating,
				post.rating_count,
				post.created_at,
				post.updated_at,
			)
		except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
			# posts_one_pending_per_user backs the pending-post check under races
			raise PendingPostExists() from exc
		return models.Post.from_record(record)

	async def get_rating_breakdown(self, post_id: UUID) -> dict[int, int]:
		rows = await self.conn.fetch(
			"SELECT score, COUNT(*)::int AS n FROM ratings WHERE post_id = $1 GROUP BY score",
			post_id,
		)
		breakdown = {score: 0 for score in range(models.MIN_SCORE, models.MAX_SCORE + 1)}
		for row in rows:
			breakdown[int(row["score"])] = row["n"]
		return breakdown

	async def list_user_posts(
		self, owner_id: str, *, search: Optional[str], limit: int, offset: int
	) -> list[models.Post]:
		conditions = ["user_id = $1"]
		params: list[object] = [owner_id]
		if search:
			params.append(f"%{_escape_like(search)}%")
			idx = len(params)
			conditions.append(f"(title ILIKE ${idx} ESCAPE '\\' OR description ILIKE ${idx} ESCAPE '\\')")
		params.extend([limit, offset])
		query = f"""
			SELECT * FROM posts
			WHERE {' AND '.join(conditions)}
			ORDER BY created_at DESC, id DESC
			LIMIT ${len(params) - 1} OFFSET ${len(params)}
		"""
		rows = await self.conn.fetch(query, *params)
		return [models.Post.from_record(row) for row in rows]

	async def list_ratable_posts(self, user_id: str, *, limit: int, offset: int) -> list[models.Post]:
		rows = await self.conn.fetch(_RATABLE_POSTS_SQL, user_id, limit, offset)
		return [models.Post.from_record(row) for row in rows]

	async def post_stats(self, user_id: str) -> tuple[int, list[Decimal]]:
		row = await self.conn.fetchrow(
			"""
			SELECT COUNT(*)::int AS total_posts,
				COALESCE(array_agg(average_rating) FILTER (WHERE rating_count > 0), '{}') AS averages
			FROM posts
			WHERE user_id = $1
			""",
			user_id,
		)
		return row["total_posts"], [Decimal(str(value)) for value in row["averages"]]

	# --- Ratings ----------------------------------------------------------

	async def has_rating(self, post_id: UUID, user_id: str) -> bool:
		return bool(
			await self.conn.fetchval(
				"SELECT EXISTS(SELECT 1 FROM ratings WHERE post_id = $1 AND user_id = $2)",
				post_id,
				user_id,
			)
		)

	async def insert_rating_if_absent(self, post_id: UUID, user_id: str, score: int) -> Optional[models.Rating]:
		record = await self.conn.fetchrow(
			"""
			INSERT INTO ratings (post_id, user_id, score)
			VALUES ($1, $2, $3)
			ON CONFLICT (post_id, user_id) DO NOTHING
			RETURNING *
			""",
			post_id,
			user_id,
			score,
		)
		return models.Rating.from_record(record) if record else None

	async def rating_totals(self, post_id: UUID) -> tuple[int, int]:
		row = await self.conn.fetchrow(
			"SELECT COUNT(*)::int AS n, COALESCE(SUM(score), 0)::int AS total FROM ratings WHERE post_id = $1",
			post_id,
		)
		return row["n"], row["total"]

	# --- Users ------------------------------------------------------------

	async def get_user(self, user_id: str, *, for_update: bool = False) -> models.UserQuota:
		# Identities are issued upstream; the quota row is created on first use.
		await self.conn.execute(
			"INSERT INTO users (id) VALUES ($1) ON CONFLICT (id) DO NOTHING",
			user_id,
		)
		query = "SELECT * FROM users WHERE id = $1"
		if for_update:
			query += " FOR UPDATE"
		record = await self.conn.fetchrow(query, user_id)
		return models.UserQuota.from_record(record)

	async def update_user_quota(self, user: models.UserQuota) -> models.UserQuota:
		record = await self.conn.fetchrow(
			"""
			UPDATE users
			SET pending_post_id = $2,
				ratings_needed_to_publish = $3,
				total_ratings_given = $4,
				updated_at = NOW()
			WHERE id = $1
			RETURNING *
			""",
			user.id,
			user.pending_post_id,
			user.ratings_needed_to_publish,
			user.total_ratings_given,
		)
		if not record:
			raise NotFoundError("user_not_found", "User not found.")
		return models.UserQuota.from_record(record)


@asynccontextmanager
async def unit_of_work() -> AsyncIterator[PostgresUnitOfWork]:
	pool = await get_pool()
	async with pool.acquire() as conn:
		async with conn.transaction():
			yield PostgresUnitOfWork(conn)

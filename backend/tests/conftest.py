import asyncio
import copy
import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from itertools import count
from pathlib import Path
from typing import Iterable, Optional
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

os.environ.setdefault("SECRET_KEY", "test-secret-key")

from dealrate.api.deps import get_posts_service
from dealrate.domain.posts import models, policy
from dealrate.domain.posts.exceptions import PendingPostExists
from dealrate.domain.posts.models import PostStatus
from dealrate.domain.posts.policy import QuotaPolicy
from dealrate.domain.posts.service import PostsService
from dealrate.infra import postgres
from dealrate.main import app
from dealrate.settings import settings


class MemoryUnitOfWork:
	"""In-memory twin of PostgresUnitOfWork; reads and writes hand out copies."""

	def __init__(self, store: "MemoryStore") -> None:
		self.store = store

	async def get_post(self, post_id: UUID, *, for_update: bool = False) -> Optional[models.Post]:
		post = self.store.posts.get(post_id)
		return copy.deepcopy(post) if post else None

	async def upsert_post(self, post: models.Post) -> models.Post:
		if post.id not in self.store.posts:
			if post.status is PostStatus.PENDING and any(
				p.user_id == post.user_id and p.status is PostStatus.PENDING for p in self.store.posts.values()
			):
				raise PendingPostExists()
			self.store.order[post.id] = next(self.store.seq)
			stored = copy.deepcopy(post)
		else:
			stored = copy.deepcopy(self.store.posts[post.id])
			stored.status = post.status
			stored.average_rating = post.average_rating
			stored.rating_count = post.rating_count
			stored.updated_at = post.updated_at
		stored.rating_breakdown = None
		self.store.posts[post.id] = stored
		return copy.deepcopy(stored)

	async def get_rating_breakdown(self, post_id: UUID) -> dict[int, int]:
		breakdown = {score: 0 for score in range(1, 6)}
		for rating in self.store.ratings.values():
			if rating.post_id == post_id:
				breakdown[rating.score] += 1
		return breakdown

	async def has_rating(self, post_id: UUID, user_id: str) -> bool:
		return (post_id, user_id) in self.store.ratings

	async def insert_rating_if_absent(self, post_id: UUID, user_id: str, score: int) -> Optional[models.Rating]:
		key = (post_id, user_id)
		if key in self.store.ratings:
			return None
		rating = models.Rating(post_id=post_id, user_id=user_id, score=score, created_at=datetime.now(timezone.utc))
		self.store.ratings[key] = rating
		return copy.deepcopy(rating)

	async def rating_totals(self, post_id: UUID) -> tuple[int, int]:
		scores = [r.score for r in self.store.ratings.values() if r.post_id == post_id]
		return len(scores), sum(scores)

	async def get_user(self, user_id: str, *, for_update: bool = False) -> models.UserQuota:
		if user_id not in self.store.users:
			self.store.users[user_id] = models.UserQuota(id=user_id, created_at=datetime.now(timezone.utc))
		return copy.deepcopy(self.store.users[user_id])

	async def update_user_quota(self, user: models.UserQuota) -> models.UserQuota:
		self.store.users[user.id] = copy.deepcopy(user)
		return copy.deepcopy(user)

	def _newest_first(self, posts: Iterable[models.Post]) -> list[models.Post]:
		return sorted(posts, key=lambda p: (p.created_at, self.store.order[p.id]), reverse=True)

	async def list_user_posts(
		self, owner_id: str, *, search: Optional[str], limit: int, offset: int
	) -> list[models.Post]:
		needle = search.casefold() if search else None
		rows = [
			p
			for p in self.store.posts.values()
			if p.user_id == owner_id
			and (needle is None or needle in p.title.casefold() or needle in p.description.casefold())
		]
		return copy.deepcopy(self._newest_first(rows)[offset : offset + limit])

	async def list_ratable_posts(self, user_id: str, *, limit: int, offset: int) -> list[models.Post]:
		rows = [
			p
			for p in self.store.posts.values()
			if p.status is PostStatus.LIVE and p.user_id != user_id and (p.id, user_id) not in self.store.ratings
		]
		return copy.deepcopy(self._newest_first(rows)[offset : offset + limit])

	async def post_stats(self, user_id: str) -> tuple[int, list[Decimal]]:
		mine = [p for p in self.store.posts.values() if p.user_id == user_id]
		return len(mine), [p.average_rating for p in mine if p.rating_count > 0]


class MemoryStore:
	"""Dict-backed store; one unit of work at a time, rolled back on any error."""

	def __init__(self) -> None:
		self.posts: dict[UUID, models.Post] = {}
		self.ratings: dict[tuple[UUID, str], models.Rating] = {}
		self.users: dict[str, models.UserQuota] = {}
		self.order: dict[UUID, int] = {}
		self.seq = count()
		self._lock = asyncio.Lock()
		self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

	@asynccontextmanager
	async def unit_of_work(self):
		async with self._lock:
			snapshot = copy.deepcopy((self.posts, self.ratings, self.users, self.order))
			try:
				yield MemoryUnitOfWork(self)
			except BaseException:
				self.posts, self.ratings, self.users, self.order = snapshot
				raise

	def seed_post(
		self,
		user_id: str,
		*,
		status: PostStatus = PostStatus.LIVE,
		scores: Iterable[int] = (),
		title: str = "Used hatchback, low miles",
		description: str = "One owner, full service history, new tyres.",
		price: int = 450_000,
	) -> models.Post:
		"""Insert a post directly, bypassing the quota gate, with optional prior ratings."""
		self._clock += timedelta(minutes=1)
		post_id = uuid4()
		scores = list(scores)
		for idx, score in enumerate(scores):
			rater = f"seed-rater-{idx}"
			self.users.setdefault(rater, models.UserQuota(id=rater))
			self.ratings[(post_id, rater)] = models.Rating(post_id, rater, score, self._clock)
		self.users.setdefault(user_id, models.UserQuota(id=user_id))
		post = models.Post(
			id=post_id,
			user_id=user_id,
			title=title,
			description=description,
			price=price,
			status=status,
			average_rating=policy.round_average(sum(scores), len(scores)),
			rating_count=len(scores),
			created_at=self._clock,
			updated_at=self._clock,
		)
		self.posts[post_id] = post
		self.order[post_id] = next(self.seq)
		return copy.deepcopy(post)

	def ratings_for(self, post_id: UUID) -> list[int]:
		return [r.score for r in self.ratings.values() if r.post_id == post_id]


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from dealrate.infra.redis import redis_client, set_redis_client

	original = redis_client._client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings(monkeypatch):
	"""API tests authenticate via X-User-Id, which is only honoured in dev mode."""
	monkeypatch.setattr(settings, "environment", "dev")


@pytest.fixture
def memory_store() -> MemoryStore:
	return MemoryStore()


@pytest.fixture
def quota_policy() -> QuotaPolicy:
	return QuotaPolicy(publish_quota=2, rated_threshold=5, page_size=10)


@pytest.fixture
def posts_service(memory_store, quota_policy) -> PostsService:
	return PostsService(uow_factory=memory_store.unit_of_work, quota_policy=quota_policy)


@pytest_asyncio.fixture
async def api_client(posts_service):
	app.dependency_overrides[get_posts_service] = lambda: posts_service
	transport = ASGITransport(app=app)
	try:
		async with AsyncClient(transport=transport, base_url="http://testserver") as client:
			yield client
	finally:
		app.dependency_overrides.pop(get_posts_service, None)

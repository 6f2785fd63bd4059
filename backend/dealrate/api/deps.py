"""Shared FastAPI dependencies for the posts API."""

from __future__ import annotations

from functools import lru_cache

from dealrate.domain.posts.service import PostsService


@lru_cache(maxsize=1)
def get_posts_service() -> PostsService:
	return PostsService()

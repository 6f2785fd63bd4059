"""REST API surface for posts."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from dealrate.api.deps import get_posts_service
from dealrate.domain.posts.schemas import PostCreateRequest, PostEnvelope, PostListResponse, PostSummary
from dealrate.domain.posts.service import PostsService
from dealrate.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["posts"])


@router.post("/posts", response_model=PostEnvelope, status_code=status.HTTP_201_CREATED)
async def create_post(
	payload: PostCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: PostsService = Depends(get_posts_service),
) -> PostEnvelope:
	post = await service.create_post(auth_user.id, payload.to_draft())
	return PostEnvelope(post=PostSummary.from_post(post))


@router.get("/posts", response_model=PostListResponse)
async def list_posts(
	search: Optional[str] = Query(default=None, max_length=100),
	page: int = Query(default=0, ge=0),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: PostsService = Depends(get_posts_service),
) -> PostListResponse:
	result = await service.list_posts(auth_user.id, search=search, page=page)
	return PostListResponse.from_page(result)


@router.get("/posts/{post_id}", response_model=PostEnvelope)
async def get_post(
	post_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: PostsService = Depends(get_posts_service),
) -> PostEnvelope:
	post = await service.get_post(post_id, viewer_id=auth_user.id)
	return PostEnvelope(post=PostSummary.from_post(post))


@router.get("/posts-to-rate", response_model=PostListResponse)
async def posts_to_rate(
	page: int = Query(default=0, ge=0),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: PostsService = Depends(get_posts_service),
) -> PostListResponse:
	result = await service.list_ratable_posts(auth_user.id, page=page)
	return PostListResponse.from_page(result)

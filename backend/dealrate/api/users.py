"""Caller profile with quota state and derived stats."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dealrate.api.deps import get_posts_service
from dealrate.domain.posts.schemas import UserEnvelope
from dealrate.domain.posts.service import PostsService
from dealrate.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["users"])


@router.get("/user", response_model=UserEnvelope)
async def get_user_profile(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: PostsService = Depends(get_posts_service),
) -> UserEnvelope:
	profile = await service.get_profile(auth_user.id, name=auth_user.name)
	return UserEnvelope.from_profile(profile)

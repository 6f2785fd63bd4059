"""REST API surface for ratings."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from dealrate.api.deps import get_posts_service
from dealrate.domain.posts.schemas import RatingCreateRequest, RatingEnvelope
from dealrate.domain.posts.service import PostsService
from dealrate.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["ratings"])


@router.post("/ratings", response_model=RatingEnvelope, status_code=status.HTTP_201_CREATED)
async def submit_rating(
	payload: RatingCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: PostsService = Depends(get_posts_service),
) -> RatingEnvelope:
	outcome = await service.submit_rating(auth_user.id, payload.post_id, payload.rating)
	return RatingEnvelope.from_outcome(outcome)

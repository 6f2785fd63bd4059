"""Domain-level exceptions for posts and ratings."""

from __future__ import annotations

from fastapi import status


class PostsError(Exception):
	"""Base class for post and rating errors.

	``detail`` is a stable machine code, ``message`` is safe to show to users.
	"""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "posts_error"
	message: str = "Request could not be completed."

	def __init__(self, detail: str | None = None, message: str | None = None) -> None:
		super().__init__(message or detail or self.message)
		if detail:
			self.detail = detail
		if message:
			self.message = message


class InvalidArgument(PostsError):
	detail = "invalid_argument"
	message = "Invalid input."


class ConflictError(PostsError):
	detail = "conflict"
	message = "Request conflicts with the current state."


class PendingPostExists(ConflictError):
	detail = "pending_post_exists"
	message = "You already have a pending post. Rate others to publish it."


class AlreadyRated(ConflictError):
	detail = "already_rated"
	message = "Already rated this post."


class PostNotRatable(ConflictError):
	detail = "post_not_ratable"
	message = "This post is not open for ratings."


class ForbiddenError(PostsError):
	detail = "forbidden"
	message = "Not allowed."


class SelfRatingForbidden(ForbiddenError):
	detail = "own_post"
	message = "Cannot rate your own post."


class NotFoundError(PostsError):
	status_code = status.HTTP_404_NOT_FOUND
	detail = "post_not_found"
	message = "Post not found."


class InvalidTransition(PostsError):
	"""An internal status change outside the lifecycle graph; always a defect."""

	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
	detail = "invalid_transition"
	message = "Internal error."

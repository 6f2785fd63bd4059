"""Audit helpers for posts and ratings.

Events are appended after the unit of work commits, so a Redis failure is
logged and counted but never turns a committed write into an error.
"""

from __future__ import annotations

import logging
from typing import Dict

from dealrate.infra.redis import redis_client
from dealrate.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

POSTS_STREAM = "x:posts.events"
RATINGS_STREAM = "x:ratings.events"


async def _append(stream: str, event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **fields}
	try:
		await redis_client.xadd(stream, payload)
	except Exception:
		obs_metrics.inc_audit_emit_failure(stream)
		logger.warning("audit_append_failed", extra={"stream": stream, "event": event}, exc_info=True)


async def log_post_event(event: str, fields: Dict[str, str]) -> None:
	await _append(POSTS_STREAM, event, fields)


async def log_rating_event(event: str, fields: Dict[str, str]) -> None:
	await _append(RATINGS_STREAM, event, fields)


def inc_post_created() -> None:
	obs_metrics.inc_post_created()


def inc_create_reject(reason: str) -> None:
	obs_metrics.inc_post_create_rejected(reason)


def inc_transition(to_status: str) -> None:
	obs_metrics.inc_post_transition(to_status)


def inc_rating(result: str, score: int | None = None) -> None:
	obs_metrics.inc_rating_submitted(result)
	if score is not None:
		obs_metrics.inc_rating_score(score)

"""Posts domain exports."""

from . import aggregator, audit, lifecycle, policy, repo, service  # noqa: F401
from .models import (  # noqa: F401
	DEFAULT_PUBLISH_QUOTA,
	DEFAULT_RATED_THRESHOLD,
	PAGE_SIZE,
	PostStatus,
)
from .policy import QuotaPolicy  # noqa: F401

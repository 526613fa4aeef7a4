"""Plan tier limits on what an account can see."""

from __future__ import annotations

import os
from typing import Sequence, TypeVar

FREE_CAMPAIGN_LIMIT = int(os.environ.get("FREE_CAMPAIGN_LIMIT", 5))

PLAN_CAMPAIGN_LIMITS: dict[str, int | None] = {
    "free": FREE_CAMPAIGN_LIMIT,
    "starter": None,
    "pro": None,
    "agency": None,
}

T = TypeVar("T")


def normalize_plan(plan: str | None) -> str:
    name = (plan or "free").strip().lower()
    return name if name in PLAN_CAMPAIGN_LIMITS else "free"


def campaign_limit(plan: str | None) -> int | None:
    """Number of leading campaigns a plan may see; None means unlimited."""
    return PLAN_CAMPAIGN_LIMITS[normalize_plan(plan)]


def visible_campaigns(campaigns: Sequence[T], plan: str | None) -> list[T]:
    limit = campaign_limit(plan)
    if limit is None:
        return list(campaigns)
    return list(campaigns[:limit])

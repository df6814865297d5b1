"""Outbox helpers for the points event stream."""

from __future__ import annotations

from typing import Any, Dict

from consumed.infra.redis import redis_client
from consumed.obs import metrics as obs_metrics
from consumed.settings import settings

POINTS_STREAM = "x:points.events"


async def append_event(event_type: str, payload: Dict[str, Any]) -> None:
	"""Append a structured event to the points stream."""

	body = {"type": event_type, **{k: str(v) for k, v in payload.items()}}
	await redis_client.xadd(POINTS_STREAM, body, maxlen=settings.points_events_maxlen, approximate=False)
	obs_metrics.inc_points_event(event_type)


async def record_points_computed(user_id: str, all_time: int, rank: int, total_users: int) -> None:
	await append_event(
		"points_computed",
		{"user_id": user_id, "all_time": all_time, "rank": rank, "total_users": total_users},
	)

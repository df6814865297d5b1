"""FastAPI routes for the per-user score computation."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from consumed.domain.exceptions import ConsumedError
from consumed.domain.identity.exceptions import UserCreationFailed
from consumed.domain.identity.service import IdentityService
from consumed.domain.points.schemas import PointsResponseSchema
from consumed.domain.points.service import PointsService
from consumed.infra.auth import AuthIdentity, get_current_identity
from consumed.obs.logging import bind_context, reset_context

logger = logging.getLogger(__name__)

router = APIRouter(tags=["points"])

_service = PointsService()
_identity = IdentityService()


async def _resolve_target(identity: AuthIdentity, explicit_id: Optional[str]) -> str:
	"""The caller's own id, or ``explicit_id`` once it is known to exist."""
	try:
		caller = await _identity.resolve_app_user(identity)
	except UserCreationFailed:
		if explicit_id is None:
			raise
		# scoring someone else does not need the caller's profile
		logger.warning("caller_create_failed_continuing", extra={"auth_id": identity.id}, exc_info=True)
		caller = None
	if explicit_id is None:
		assert caller is not None
		return caller.id
	if caller is None or explicit_id != caller.id:
		await _identity.require_user(explicit_id)
	return explicit_id


@router.api_route(
	"/calculate-user-points",
	methods=["GET", "POST"],
	response_model=PointsResponseSchema,
)
async def calculate_user_points_endpoint(
	user_id: Optional[str] = Query(default=None, description="User to score; defaults to the caller"),
	identity: AuthIdentity = Depends(get_current_identity),
) -> PointsResponseSchema:
	explicit_id = (user_id or "").strip() or None
	try:
		target_id = await _resolve_target(identity, explicit_id)
	except ConsumedError:
		raise
	except Exception as exc:
		logger.exception("points_target_failed", extra={"auth_id": identity.id})
		raise ConsumedError(str(exc)) from exc

	tokens = bind_context(user_id=target_id)
	try:
		result = await _service.compute_score_and_rank(target_id)
	except ConsumedError:
		raise
	except Exception as exc:
		logger.exception("points_compute_failed", extra={"target_user_id": target_id})
		raise ConsumedError(str(exc)) from exc
	finally:
		reset_context(tokens)
	return PointsResponseSchema.from_result(result)

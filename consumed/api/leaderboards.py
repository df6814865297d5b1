"""FastAPI routes for per-category leaderboards."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from consumed.domain.exceptions import ConsumedError
from consumed.domain.identity.exceptions import UserLookupFailed, UserNotFound
from consumed.domain.identity.service import IdentityService
from consumed.domain.leaderboards.exceptions import InvalidLeaderboardQuery
from consumed.domain.leaderboards.models import ALL_CATEGORIES, LeaderboardPeriod, LeaderboardScope
from consumed.domain.leaderboards.schemas import LeaderboardsResponseSchema
from consumed.domain.leaderboards.service import LeaderboardService
from consumed.infra.auth import AuthIdentity, get_current_identity

logger = logging.getLogger(__name__)

router = APIRouter(tags=["leaderboards"])

_service = LeaderboardService()
_identity = IdentityService()


def _parse_scope(value: str) -> LeaderboardScope:
	try:
		return LeaderboardScope((value or "").strip().lower())
	except ValueError as exc:
		raise InvalidLeaderboardQuery(f"Invalid scope: {value}") from exc


def _parse_period(value: str) -> LeaderboardPeriod:
	try:
		return LeaderboardPeriod((value or "").strip().lower())
	except ValueError as exc:
		raise InvalidLeaderboardQuery(f"Invalid period: {value}") from exc


@router.get("/get-leaderboards", response_model=LeaderboardsResponseSchema)
async def get_leaderboards_endpoint(
	category: str = Query(default=ALL_CATEGORIES),
	scope: str = Query(default=LeaderboardScope.GLOBAL.value),
	period: str = Query(default=LeaderboardPeriod.ALL_TIME.value),
	limit: Optional[int] = Query(default=None, description="Rows per category"),
	identity: AuthIdentity = Depends(get_current_identity),
) -> LeaderboardsResponseSchema:
	scope_value = _parse_scope(scope)
	period_value = _parse_period(period)
	try:
		caller = await _identity.resolve_app_user(identity, create_missing=False)
	except UserLookupFailed as exc:
		raise UserNotFound() from exc
	except ConsumedError:
		raise
	except Exception as exc:
		logger.exception("leaderboards_caller_failed", extra={"auth_id": identity.id})
		raise ConsumedError(str(exc)) from exc

	try:
		boards = await _service.get_leaderboards(
			caller_id=caller.id,
			category=category,
			scope=scope_value,
			period=period_value,
			limit=limit,
		)
	except ConsumedError:
		raise
	except Exception as exc:
		logger.exception("leaderboards_failed", extra={"category": category, "scope": scope_value.value})
		raise ConsumedError(str(exc)) from exc
	return LeaderboardsResponseSchema.build(
		boards,
		current_user_id=caller.id,
		scope=scope_value,
		period=period_value,
	)

"""Service layer for per-category leaderboards."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple

from consumed.domain.identity.models import AppUser
from consumed.domain.identity.repo import UsersRepository
from consumed.domain.leaderboards import policy
from consumed.domain.leaderboards.exceptions import InvalidLeaderboardQuery
from consumed.domain.leaderboards.models import (
	ALL_CATEGORIES,
	TRIVIA_CHALLENGE_PREFIX,
	LeaderboardCategory,
	LeaderboardPeriod,
	LeaderboardRow,
	LeaderboardScope,
)
from consumed.domain.points import policy as points_policy
from consumed.domain.points.models import ActivityFilter, ActivitySet
from consumed.domain.points.service import PointsService
from consumed.infra.postgres import DB_ERRORS
from consumed.obs import metrics as obs_metrics
from consumed.settings import settings

logger = logging.getLogger(__name__)

# A requested board is either a named category or a trivia challenge pool id
BoardKey = Tuple[str, Optional[LeaderboardCategory], Optional[str]]


def parse_categories(category: str) -> List[BoardKey]:
	"""Expand the ``category`` query value into the boards to build."""
	raw = (category or ALL_CATEGORIES).strip()
	value = raw.lower()
	if value == ALL_CATEGORIES:
		return [(member.value, member, None) for member in LeaderboardCategory]
	if value.startswith(TRIVIA_CHALLENGE_PREFIX):
		pool_id = raw[len(TRIVIA_CHALLENGE_PREFIX):]
		if not pool_id:
			raise InvalidLeaderboardQuery("Missing trivia challenge pool id")
		return [(raw, None, pool_id)]
	try:
		member = LeaderboardCategory(value)
	except ValueError as exc:
		raise InvalidLeaderboardQuery(f"Unknown category: {category}") from exc
	return [(member.value, member, None)]


def clamp_limit(limit: Optional[int]) -> int:
	if limit is None:
		return settings.leaderboard_default_limit
	return max(1, min(int(limit), settings.leaderboard_max_limit))


class LeaderboardService:
	def __init__(
		self,
		points_service: Optional[PointsService] = None,
		users_repo: Optional[UsersRepository] = None,
	) -> None:
		self._points = points_service or PointsService()
		self._users = users_repo or UsersRepository()

	async def friend_scope(self, caller_id: str) -> Set[str]:
		"""Caller plus every accepted friend, whichever side of the edge they sit on."""
		members = {caller_id}
		try:
			edges = await self._points.repo.accepted_friendships(ActivityFilter.for_users([caller_id]))
		except DB_ERRORS as exc:
			obs_metrics.inc_soft_read_failure("friendships")
			logger.warning("friend_scope_read_failed", extra={"caller_id": caller_id, "error": str(exc)})
			return members
		for edge in edges:
			if edge.user_id == caller_id:
				members.add(edge.friend_id)
			elif edge.friend_id == caller_id:
				members.add(edge.user_id)
		return members

	async def get_leaderboards(
		self,
		*,
		caller_id: str,
		category: str = ALL_CATEGORIES,
		scope: LeaderboardScope = LeaderboardScope.GLOBAL,
		period: LeaderboardPeriod = LeaderboardPeriod.ALL_TIME,
		limit: Optional[int] = None,
		now: Optional[datetime] = None,
	) -> Dict[str, List[LeaderboardRow]]:
		"""Build every requested board for the scope and period, best score first."""

		boards = parse_categories(category)
		size = clamp_limit(limit)
		since = period.since(now or datetime.now(timezone.utc))

		if scope is LeaderboardScope.FRIENDS:
			members: Optional[Set[str]] = await self.friend_scope(caller_id)
			activity_filter = ActivityFilter.for_users(sorted(members), since=since)
		else:
			members = None
			activity_filter = ActivityFilter(since=since)

		activity = await self._points.gather_activity(activity_filter)
		tallies = points_policy.tally_activity(activity)
		if members is not None:
			# friendship edges pull in the friends' own friends; keep only the scope
			tallies = {user_id: tally for user_id, tally in tallies.items() if user_id in members}

		result: Dict[str, List[LeaderboardRow]] = {}
		for name, board, pool_id in boards:
			if board is not None:
				values = policy.board_values(board, tallies)
			else:
				values = self._pool_values(activity, pool_id or "", members)
			result[name] = policy.rank_rows(values)[:size]
			label = board.value if board is not None else "trivia_challenge"
			obs_metrics.inc_leaderboard_build(label, scope.value, period.value)

		await self._attach_profiles(result.values())
		return result

	@staticmethod
	def _pool_values(
		activity: ActivitySet,
		pool_id: str,
		members: Optional[Set[str]],
	) -> List[policy.ScoredValue]:
		entries = activity.participations
		if members is not None:
			entries = [entry for entry in entries if entry.user_id in members]
		return policy.pool_values(entries, pool_id)

	async def _attach_profiles(self, boards: Iterable[List[LeaderboardRow]]) -> None:
		rows = [row for board in boards for row in board]
		if not rows:
			return
		try:
			profiles: Dict[str, AppUser] = await self._users.get_profiles(row.user_id for row in rows)
		except DB_ERRORS as exc:
			obs_metrics.inc_soft_read_failure("users")
			logger.warning("leaderboard_profiles_failed", extra={"error": str(exc)})
			return
		for row in rows:
			profile = profiles.get(row.user_id)
			if profile is None:
				continue
			row.username = profile.user_name
			row.display_name = profile.display_name or profile.user_name

"""asyncpg reads over the activity tables and the score snapshot upsert."""

from __future__ import annotations

from collections import Counter
from typing import Any, List, Mapping, Sequence, Tuple

from consumed.domain.points.models import (
	ActivityFilter,
	ConsumptionItem,
	FriendEdge,
	Participation,
	SocialPost,
	WonBet,
)
from consumed.infra.postgres import get_pool


def _filter_clause(
	activity_filter: ActivityFilter,
	*,
	user_columns: Sequence[str] = ("user_id",),
	created_column: str = "created_at",
	start: int = 1,
) -> Tuple[str, List[Any]]:
	"""Build ``AND ...`` conditions for the scope/period of ``activity_filter``."""
	clauses: List[str] = []
	args: List[Any] = []
	if activity_filter.user_ids is not None:
		args.append(list(activity_filter.user_ids))
		placeholder = f"${start + len(args) - 1}::text[]"
		checks = [f"{column}::text = ANY({placeholder})" for column in user_columns]
		clauses.append(checks[0] if len(checks) == 1 else "(" + " OR ".join(checks) + ")")
	if activity_filter.since is not None:
		args.append(activity_filter.since)
		clauses.append(f"{created_column} >= ${start + len(args) - 1}")
	sql = "".join(f" AND {clause}" for clause in clauses)
	return sql, args


class ActivityRepository:
	"""Thin data-access layer around asyncpg."""

	async def _fetch(self, query: str, args: Sequence[Any]):
		pool = await get_pool()
		async with pool.acquire() as conn:
			return await conn.fetch(query, *args)

	async def _count_by(self, table: str, column: str, activity_filter: ActivityFilter, extra: str = "") -> Counter[str]:
		where, args = _filter_clause(activity_filter, user_columns=(column,))
		rows = await self._fetch(
			f"""
			SELECT {column}::text AS user_id, COUNT(*) AS n
			FROM {table}
			WHERE {column} IS NOT NULL{extra}{where}
			GROUP BY {column}
			""",
			args,
		)
		return Counter({str(row["user_id"]): int(row["n"]) for row in rows})

	async def list_items(self, activity_filter: ActivityFilter) -> List[ConsumptionItem]:
		where, args = _filter_clause(activity_filter)
		rows = await self._fetch(
			f"SELECT user_id::text AS user_id, media_type, notes, created_at FROM list_items WHERE TRUE{where}",
			args,
		)
		return [
			ConsumptionItem(
				user_id=row["user_id"],
				media_type=row["media_type"],
				notes=row["notes"],
				created_at=row["created_at"],
			)
			for row in rows
		]

	async def participations(self, activity_filter: ActivityFilter) -> List[Participation]:
		where, args = _filter_clause(
			activity_filter,
			user_columns=("up.user_id",),
			created_column="up.created_at",
		)
		rows = await self._fetch(
			f"""
			SELECT up.user_id::text AS user_id,
				up.pool_id::text AS pool_id,
				COALESCE(up.points_earned, 0) AS points_earned,
				COALESCE(up.is_winner, FALSE) AS is_winner,
				up.created_at,
				pp.type AS pool_type
			FROM user_predictions up
			LEFT JOIN prediction_pools pp ON pp.id = up.pool_id
			WHERE TRUE{where}
			""",
			args,
		)
		return [
			Participation(
				user_id=row["user_id"],
				pool_type=row["pool_type"],
				points_earned=int(row["points_earned"]),
				is_winner=bool(row["is_winner"]),
				pool_id=row["pool_id"],
				created_at=row["created_at"],
			)
			for row in rows
		]

	async def won_bets(self, activity_filter: ActivityFilter) -> List[WonBet]:
		where, args = _filter_clause(activity_filter)
		rows = await self._fetch(
			f"""
			SELECT user_id::text AS user_id, COALESCE(points_awarded, 0) AS points_awarded, created_at
			FROM bets
			WHERE status = 'won'{where}
			""",
			args,
		)
		return [
			WonBet(user_id=row["user_id"], points_awarded=int(row["points_awarded"]), created_at=row["created_at"])
			for row in rows
		]

	async def accepted_friendships(self, activity_filter: ActivityFilter) -> List[FriendEdge]:
		"""Accepted edges touching the scope from either direction."""
		where, args = _filter_clause(activity_filter, user_columns=("user_id", "friend_id"))
		rows = await self._fetch(
			f"""
			SELECT user_id::text AS user_id, friend_id::text AS friend_id
			FROM friendships
			WHERE status = 'accepted'{where}
			""",
			args,
		)
		return [FriendEdge(user_id=row["user_id"], friend_id=row["friend_id"]) for row in rows]

	async def rewarded_referrals(self, activity_filter: ActivityFilter) -> Counter[str]:
		return await self._count_by("users", "referred_by", activity_filter, extra=" AND referral_rewarded IS TRUE")

	async def posts(self, activity_filter: ActivityFilter) -> List[SocialPost]:
		where, args = _filter_clause(activity_filter)
		rows = await self._fetch(
			f"""
			SELECT user_id::text AS user_id,
				COALESCE(likes_count, 0) AS likes_count,
				COALESCE(comments_count, 0) AS comments_count,
				created_at
			FROM social_posts
			WHERE TRUE{where}
			""",
			args,
		)
		return [
			SocialPost(
				user_id=row["user_id"],
				likes_count=int(row["likes_count"]),
				comments_count=int(row["comments_count"]),
				created_at=row["created_at"],
			)
			for row in rows
		]

	async def likes_given(self, activity_filter: ActivityFilter) -> Counter[str]:
		return await self._count_by("social_post_likes", "user_id", activity_filter)

	async def comments_made(self, activity_filter: ActivityFilter) -> Counter[str]:
		return await self._count_by("social_post_comments", "user_id", activity_filter)

	async def ranks_created(self, activity_filter: ActivityFilter) -> Counter[str]:
		return await self._count_by("ranks", "user_id", activity_filter)

	async def upsert_points(self, user_id: str, points: Mapping[str, int]) -> None:
		pool = await get_pool()
		records = [(user_id, category, int(value)) for category, value in points.items()]
		async with pool.acquire() as conn:
			await conn.executemany(
				"""
				INSERT INTO user_points (user_id, category, points)
				VALUES ($1, $2, $3)
				ON CONFLICT (user_id, category)
				DO UPDATE SET points = EXCLUDED.points
				""",
				records,
			)

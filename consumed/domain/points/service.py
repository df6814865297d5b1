"""Service layer for the points engine: per-user score, global rank and snapshot."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from typing import Any, Awaitable, List, Optional, TypeVar

from consumed.domain.points import outbox, policy
from consumed.domain.points.exceptions import FailedToFetchUserItems
from consumed.domain.points.models import ActivityFilter, ActivitySet, Category, GlobalRank, ScoreResult, UserTally
from consumed.domain.points.repo import ActivityRepository
from consumed.infra.postgres import DB_ERRORS
from consumed.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _soft_read(source: str, pending: Awaitable[T], empty: T) -> T:
	"""Await one activity read; a failing table contributes nothing instead of aborting."""
	try:
		return await pending
	except DB_ERRORS as exc:
		obs_metrics.inc_soft_read_failure(source)
		logger.warning("activity_read_failed", extra={"source": source, "error": str(exc)})
		return empty


async def _gather_or_cancel(*pending: Awaitable[Any]) -> List[Any]:
	"""``asyncio.gather`` that cancels the reads still running once one of them raises."""
	tasks = [asyncio.ensure_future(item) for item in pending]
	try:
		return await asyncio.gather(*tasks)
	except BaseException:
		for task in tasks:
			task.cancel()
		raise


class PointsService:
	"""Coordinates activity reads, weighting, ranking and snapshot persistence."""

	def __init__(self, repo: Optional[ActivityRepository] = None) -> None:
		self._repo = repo or ActivityRepository()

	@property
	def repo(self) -> ActivityRepository:
		return self._repo

	async def gather_activity(self, activity_filter: ActivityFilter, *, strict_items: bool = False) -> ActivitySet:
		"""Read every activity table for ``activity_filter`` concurrently."""

		repo = self._repo
		if strict_items:
			items_read: Awaitable[Any] = self._strict_items(activity_filter)
		else:
			items_read = _soft_read("list_items", repo.list_items(activity_filter), [])
		(
			items,
			participations,
			bets,
			friendships,
			referrals,
			posts,
			likes_given,
			comments_made,
			ranks_created,
		) = await _gather_or_cancel(
			items_read,
			_soft_read("user_predictions", repo.participations(activity_filter), []),
			_soft_read("bets", repo.won_bets(activity_filter), []),
			_soft_read("friendships", repo.accepted_friendships(activity_filter), []),
			_soft_read("referrals", repo.rewarded_referrals(activity_filter), Counter()),
			_soft_read("social_posts", repo.posts(activity_filter), []),
			_soft_read("social_post_likes", repo.likes_given(activity_filter), Counter()),
			_soft_read("social_post_comments", repo.comments_made(activity_filter), Counter()),
			_soft_read("ranks", repo.ranks_created(activity_filter), Counter()),
		)
		return ActivitySet(
			items=items,
			participations=participations,
			bets=bets,
			friendships=friendships,
			posts=posts,
			referrals=referrals,
			likes_given=likes_given,
			comments_made=comments_made,
			ranks_created=ranks_created,
		)

	async def _strict_items(self, activity_filter: ActivityFilter):
		try:
			return await self._repo.list_items(activity_filter)
		except DB_ERRORS as exc:
			logger.error("list_items_read_failed", extra={"error": str(exc)})
			raise FailedToFetchUserItems() from exc

	async def compute_score_and_rank(self, target_user_id: str) -> ScoreResult:
		"""Score one user from scratch and rank them against everyone with activity."""

		start = time.perf_counter()
		target_activity, population_activity = await _gather_or_cancel(
			self.gather_activity(ActivityFilter.for_users([target_user_id]), strict_items=True),
			self.gather_activity(ActivityFilter()),
		)
		tally = policy.tally_activity(target_activity).get(target_user_id, UserTally())
		totals = policy.category_totals(tally)

		population = policy.score_map(policy.tally_activity(population_activity))
		rank = GlobalRank(
			position=policy.rank_among(population, totals[Category.ALL_TIME]),
			total_users=len(population),
		)
		result = ScoreResult(
			user_id=target_user_id,
			totals=totals,
			counts=policy.category_counts(tally),
			engagement=policy.engagement_breakdown(tally),
			rank=rank,
		)

		await self.persist_snapshot(result)
		obs_metrics.observe_points_computed(time.perf_counter() - start)
		try:
			await outbox.record_points_computed(
				target_user_id,
				totals[Category.ALL_TIME],
				rank.position,
				rank.total_users,
			)
		except Exception:
			logger.warning("points_event_append_failed", extra={"target_user_id": target_user_id}, exc_info=True)
		return result

	async def persist_snapshot(self, result: ScoreResult) -> bool:
		"""Upsert one row per category; failures are logged and never raised."""

		points = {category.value: value for category, value in result.totals.items()}
		try:
			await self._repo.upsert_points(result.user_id, points)
		except Exception:
			obs_metrics.inc_snapshot_failure()
			logger.warning("points_snapshot_failed", extra={"target_user_id": result.user_id}, exc_info=True)
			return False
		return True

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import asyncpg
import pytest

from consumed.domain.identity.models import AppUser
from consumed.domain.leaderboards import policy
from consumed.domain.leaderboards.exceptions import InvalidLeaderboardQuery
from consumed.domain.leaderboards.models import LeaderboardCategory, LeaderboardPeriod, LeaderboardScope
from consumed.domain.leaderboards.service import LeaderboardService, clamp_limit, parse_categories
from consumed.domain.points.models import Category, ConsumptionItem, FriendEdge, Participation, SocialPost, UserTally
from consumed.domain.points.service import PointsService

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


class _FakeUsersRepo:
	def __init__(self, *, fail: bool = False) -> None:
		self.fail = fail
		self.requested: list[str] = []

	async def get_profiles(self, user_ids):
		self.requested = list(user_ids)
		if self.fail:
			raise asyncpg.PostgresError("users unavailable")
		return {
			uid: AppUser(id=uid, email=f"{uid}@example.com", user_name=f"{uid}_name", display_name=f"User {uid}")
			for uid in self.requested
		}


def _service(activity_repo, users_repo=None) -> LeaderboardService:
	return LeaderboardService(points_service=PointsService(repo=activity_repo), users_repo=users_repo or _FakeUsersRepo())


def test_score_details():
	tally = UserTally(prediction_points=60, prediction_count=12, prediction_wins=5)
	assert policy.score_for(LeaderboardCategory.PREDICTIONS, tally) == (60, "42% accuracy (5/12)")

	tally = UserTally(trivia_points=8, trivia_count=4, trivia_wins=2)
	assert policy.score_for(LeaderboardCategory.TRIVIA, tally) == (8, "50% correct (2/4)")

	tally = UserTally(poll_points=3, poll_count=3, bet_points=40, bets_won=2, reviews=1)
	assert policy.score_for(LeaderboardCategory.POLLS, tally) == (3, "3 votes")
	assert policy.score_for(LeaderboardCategory.BETS, tally) == (40, "2 bets won")
	assert policy.score_for(LeaderboardCategory.REVIEWS, tally) == (10, "1 review")

	tally = UserTally(posts=2, trivia_count=1)
	assert policy.score_for(LeaderboardCategory.OVERALL, tally) == (25, "2 posts, 1 games played")


def test_rank_rows_is_stable_for_ties():
	rows = policy.rank_rows([("a", 10, None), ("b", 30, None), ("c", 10, None)])

	assert [(row.user_id, row.rank) for row in rows] == [("b", 1), ("a", 2), ("c", 3)]


def test_parse_categories():
	assert [name for name, _, _ in parse_categories("all")] == [member.value for member in LeaderboardCategory]
	assert parse_categories("books") == [("books", LeaderboardCategory.BOOKS, None)]
	assert parse_categories("trivia_challenge_pool-9") == [("trivia_challenge_pool-9", None, "pool-9")]
	with pytest.raises(InvalidLeaderboardQuery):
		parse_categories("knitting")
	with pytest.raises(InvalidLeaderboardQuery):
		parse_categories("trivia_challenge_")


def test_clamp_limit():
	assert clamp_limit(None) == 10
	assert clamp_limit(0) == 1
	assert clamp_limit(10_000) == 100


@pytest.mark.asyncio
async def test_media_board_sorted_with_profiles(activity_repo):
	activity_repo.items = [
		ConsumptionItem("b", "book"),
		ConsumptionItem("a", "book"),
		ConsumptionItem("a", "book"),
		ConsumptionItem("c", "movie"),
	]
	service = _service(activity_repo)

	boards = await service.get_leaderboards(caller_id="a", category="books", now=NOW)

	rows = boards["books"]
	assert [(row.user_id, row.score, row.rank, row.detail) for row in rows] == [
		("a", 30, 1, "2 books"),
		("b", 15, 2, "1 book"),
	]
	assert rows[0].username == "a_name"
	assert rows[0].display_name == "User a"


@pytest.mark.asyncio
async def test_all_builds_every_board(activity_repo):
	activity_repo.items = [ConsumptionItem("a", "tv")]
	service = _service(activity_repo)

	boards = await service.get_leaderboards(caller_id="a", now=NOW)

	assert set(boards) == {member.value for member in LeaderboardCategory}
	assert [row.detail for row in boards["tv"]] == ["1 show"]
	assert boards["books"] == []


@pytest.mark.asyncio
async def test_weekly_period_excludes_older_activity(activity_repo):
	activity_repo.items = [
		ConsumptionItem("a", "movie", created_at=NOW - timedelta(days=10)),
		ConsumptionItem("a", "movie", created_at=NOW - timedelta(days=3)),
		ConsumptionItem("b", "movie", created_at=NOW - timedelta(days=20)),
	]
	service = _service(activity_repo)

	weekly = await service.get_leaderboards(
		caller_id="a", category="movies", period=LeaderboardPeriod.WEEKLY, now=NOW
	)
	monthly = await service.get_leaderboards(
		caller_id="a", category="movies", period=LeaderboardPeriod.MONTHLY, now=NOW
	)

	assert [(row.user_id, row.score) for row in weekly["movies"]] == [("a", 8)]
	assert [(row.user_id, row.score) for row in monthly["movies"]] == [("a", 16), ("b", 8)]


@pytest.mark.asyncio
async def test_friends_scope_without_friends_only_lists_caller(activity_repo):
	activity_repo.items = [ConsumptionItem("a", "game"), ConsumptionItem("stranger", "game")]
	service = _service(activity_repo)

	boards = await service.get_leaderboards(caller_id="a", category="games", scope=LeaderboardScope.FRIENDS, now=NOW)

	assert [row.user_id for row in boards["games"]] == ["a"]


@pytest.mark.asyncio
async def test_friends_scope_includes_both_directions(activity_repo):
	activity_repo.friendships = [FriendEdge("a", "b"), FriendEdge("c", "a"), FriendEdge("b", "d")]
	activity_repo.items = [
		ConsumptionItem("b", "music"),
		ConsumptionItem("c", "music"),
		ConsumptionItem("c", "music"),
		ConsumptionItem("d", "music"),
	]
	service = _service(activity_repo)

	boards = await service.get_leaderboards(caller_id="a", category="music", scope=LeaderboardScope.FRIENDS, now=NOW)

	assert [row.user_id for row in boards["music"]] == ["c", "b"]


@pytest.mark.asyncio
async def test_limit_truncates_each_board(activity_repo):
	activity_repo.items = [ConsumptionItem(f"user-{idx}", "podcast") for idx in range(5)]
	service = _service(activity_repo)

	boards = await service.get_leaderboards(caller_id="user-0", category="podcasts", limit=3, now=NOW)

	assert [row.rank for row in boards["podcasts"]] == [1, 2, 3]


@pytest.mark.asyncio
async def test_trivia_challenge_board_is_single_pool(activity_repo):
	activity_repo.participation_rows = [
		Participation("a", "trivia", points_earned=6, is_winner=True, pool_id="pool-1"),
		Participation("a", "trivia", points_earned=0, pool_id="pool-1"),
		Participation("b", "trivia", points_earned=9, is_winner=True, pool_id="pool-1"),
		Participation("b", "trivia", points_earned=50, is_winner=True, pool_id="pool-2"),
	]
	service = _service(activity_repo)

	boards = await service.get_leaderboards(caller_id="a", category="trivia_challenge_pool-1", now=NOW)

	rows = boards["trivia_challenge_pool-1"]
	assert [(row.user_id, row.score, row.detail) for row in rows] == [
		("b", 9, "100% correct (1/1)"),
		("a", 6, "50% correct (1/2)"),
	]


@pytest.mark.asyncio
async def test_overall_board_uses_engagement(activity_repo):
	activity_repo.post_rows = [SocialPost("a", likes_count=1)]
	activity_repo.like_rows = [("b", None)]
	service = _service(activity_repo)

	boards = await service.get_leaderboards(caller_id="a", category="overall", now=NOW)

	assert [(row.user_id, row.score, row.detail) for row in boards["overall"]] == [
		("a", 12, "1 post, 0 games played"),
		("b", 2, "0 posts, 0 games played"),
	]


@pytest.mark.asyncio
async def test_profile_lookup_failure_keeps_rows(activity_repo):
	activity_repo.items = [ConsumptionItem("a", "book")]
	service = _service(activity_repo, _FakeUsersRepo(fail=True))

	boards = await service.get_leaderboards(caller_id="a", category="books", now=NOW)

	assert boards["books"][0].user_id == "a"
	assert boards["books"][0].username is None


@pytest.mark.asyncio
async def test_all_time_board_matches_points_total(activity_repo):
	activity_repo.items = [ConsumptionItem("a", "book", notes="gripping"), ConsumptionItem("b", "movie")]
	activity_repo.friendships = [FriendEdge("b", "c")]
	activity_repo.referral_rows = [("b", None)]
	service = _service(activity_repo)

	boards = await service.get_leaderboards(caller_id="a", category="all_time", now=NOW)

	assert [(row.user_id, row.score, row.detail) for row in boards["all_time"]] == [
		("b", 8 + 5 + 25, "1 item logged"),
		("a", 25, "1 item logged"),
		("c", 5, "0 items logged"),
	]
	totals = await PointsService(repo=activity_repo).compute_score_and_rank("b")
	assert boards["all_time"][0].score == totals.totals[Category.ALL_TIME]


@pytest.mark.asyncio
async def test_referrals_board(activity_repo):
	activity_repo.referral_rows = [("a", None), ("a", None), ("b", None)]
	service = _service(activity_repo)

	boards = await service.get_leaderboards(caller_id="a", category="referrals", now=NOW)

	assert [(row.user_id, row.score, row.detail) for row in boards["referrals"]] == [
		("a", 50, "2 referrals"),
		("b", 25, "1 referral"),
	]


@pytest.mark.asyncio
async def test_all_includes_grand_total_and_referrals(activity_repo):
	service = _service(activity_repo)

	boards = await service.get_leaderboards(caller_id="a", now=NOW)

	assert "all_time" in boards
	assert "referrals" in boards

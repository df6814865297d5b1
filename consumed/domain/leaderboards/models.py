"""Domain models for per-category leaderboards."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class LeaderboardCategory(str, Enum):
	"""Boards that can be requested by name."""

	ALL_TIME = "all_time"
	OVERALL = "overall"
	PREDICTIONS = "predictions"
	TRIVIA = "trivia"
	POLLS = "polls"
	BETS = "bets"
	REVIEWS = "reviews"
	BOOKS = "books"
	MOVIES = "movies"
	TV = "tv"
	MUSIC = "music"
	PODCASTS = "podcasts"
	GAMES = "games"
	REFERRALS = "referrals"


ALL_CATEGORIES = "all"
TRIVIA_CHALLENGE_PREFIX = "trivia_challenge_"


class LeaderboardScope(str, Enum):
	GLOBAL = "global"
	FRIENDS = "friends"


class LeaderboardPeriod(str, Enum):
	ALL_TIME = "all_time"
	WEEKLY = "weekly"
	MONTHLY = "monthly"

	@property
	def window_days(self) -> Optional[int]:
		if self is LeaderboardPeriod.WEEKLY:
			return 7
		if self is LeaderboardPeriod.MONTHLY:
			return 30
		return None

	def since(self, now: datetime) -> Optional[datetime]:
		"""Creation-timestamp lower bound for the period, or None for all time."""
		days = self.window_days
		return now - timedelta(days=days) if days is not None else None


@dataclass(slots=True)
class LeaderboardRow:
	rank: int
	user_id: str
	score: int
	detail: Optional[str] = None
	username: Optional[str] = None
	display_name: Optional[str] = None

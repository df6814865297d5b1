"""Domain models for the points engine."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class Category(str, Enum):
	"""Point categories, in the order they are reported and persisted."""

	ALL_TIME = "all_time"
	BOOKS = "books"
	MOVIES = "movies"
	TV = "tv"
	MUSIC = "music"
	PODCASTS = "podcasts"
	GAMES = "games"
	REVIEWS = "reviews"
	PREDICTIONS = "predictions"
	TRIVIA = "trivia"
	POLLS = "polls"
	BETS = "bets"
	FRIENDS = "friends"
	REFERRALS = "referrals"
	ENGAGEMENT = "engagement"


MEDIA_CATEGORIES: Dict[str, Category] = {
	"book": Category.BOOKS,
	"movie": Category.MOVIES,
	"tv": Category.TV,
	"music": Category.MUSIC,
	"podcast": Category.PODCASTS,
	"game": Category.GAMES,
}


@dataclass(slots=True)
class ActivityFilter:
	"""Scope (user ids) and period (creation lower bound) applied to every activity read.

	``user_ids=None`` means an unscoped read across the whole population.
	"""

	user_ids: Optional[Tuple[str, ...]] = None
	since: Optional[datetime] = None

	@classmethod
	def for_users(cls, user_ids: Iterable[str], since: Optional[datetime] = None) -> "ActivityFilter":
		return cls(user_ids=tuple(dict.fromkeys(str(uid) for uid in user_ids)), since=since)

	@property
	def is_scoped(self) -> bool:
		return self.user_ids is not None


@dataclass(slots=True)
class ConsumptionItem:
	user_id: str
	media_type: Optional[str]
	notes: Optional[str] = None
	created_at: Optional[datetime] = None

	@property
	def has_review(self) -> bool:
		return bool(self.notes and self.notes.strip())


@dataclass(slots=True)
class Participation:
	"""A prediction, trivia or poll entry with the points it already earned."""

	user_id: str
	pool_type: Optional[str]
	points_earned: int = 0
	is_winner: bool = False
	pool_id: Optional[str] = None
	created_at: Optional[datetime] = None


@dataclass(slots=True)
class WonBet:
	user_id: str
	points_awarded: int = 0
	created_at: Optional[datetime] = None


@dataclass(slots=True)
class FriendEdge:
	"""Accepted friendship row; direction is whatever the store recorded."""

	user_id: str
	friend_id: str

	def as_pair(self) -> frozenset[str]:
		return frozenset((self.user_id, self.friend_id))


@dataclass(slots=True)
class SocialPost:
	user_id: str
	likes_count: int = 0
	comments_count: int = 0
	created_at: Optional[datetime] = None


@dataclass(slots=True)
class ActivitySet:
	"""Everything read from the activity tables for one filter."""

	items: List[ConsumptionItem] = field(default_factory=list)
	participations: List[Participation] = field(default_factory=list)
	bets: List[WonBet] = field(default_factory=list)
	friendships: List[FriendEdge] = field(default_factory=list)
	posts: List[SocialPost] = field(default_factory=list)
	referrals: Counter[str] = field(default_factory=Counter)
	likes_given: Counter[str] = field(default_factory=Counter)
	comments_made: Counter[str] = field(default_factory=Counter)
	ranks_created: Counter[str] = field(default_factory=Counter)


@dataclass(slots=True)
class UserTally:
	"""Raw per-user counts before weights are applied."""

	media: Counter[str] = field(default_factory=Counter)
	items_total: int = 0
	reviews: int = 0
	prediction_points: int = 0
	prediction_count: int = 0
	prediction_wins: int = 0
	trivia_points: int = 0
	trivia_count: int = 0
	trivia_wins: int = 0
	poll_points: int = 0
	poll_count: int = 0
	bet_points: int = 0
	bets_won: int = 0
	friends: int = 0
	referrals: int = 0
	posts: int = 0
	likes_received: int = 0
	comments_received: int = 0
	likes_given: int = 0
	comments_made: int = 0
	ranks_created: int = 0

	@property
	def participations(self) -> int:
		return self.prediction_count + self.trivia_count + self.poll_count


@dataclass(slots=True)
class EngagementBreakdown:
	posts: int = 0
	likes_received: int = 0
	comments_received: int = 0
	likes_given: int = 0
	comments_made: int = 0
	predictions_participated: int = 0
	ranks_created: int = 0


@dataclass(slots=True)
class GlobalRank:
	position: int
	total_users: int


@dataclass(slots=True)
class ScoreResult:
	user_id: str
	totals: Dict[Category, int]
	counts: Dict[str, int]
	engagement: EngagementBreakdown
	rank: GlobalRank

"""Per-board scoring rules and the detail line shown next to each score."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from consumed.domain.leaderboards.models import LeaderboardCategory, LeaderboardRow
from consumed.domain.points import policy as points_policy
from consumed.domain.points.models import Category, Participation, UserTally

# board -> (points category, singular, plural)
MEDIA_BOARDS: Dict[LeaderboardCategory, Tuple[Category, str, str]] = {
	LeaderboardCategory.BOOKS: (Category.BOOKS, "book", "books"),
	LeaderboardCategory.MOVIES: (Category.MOVIES, "movie", "movies"),
	LeaderboardCategory.TV: (Category.TV, "show", "shows"),
	LeaderboardCategory.MUSIC: (Category.MUSIC, "song", "songs"),
	LeaderboardCategory.PODCASTS: (Category.PODCASTS, "podcast", "podcasts"),
	LeaderboardCategory.GAMES: (Category.GAMES, "game", "games"),
}

ScoredValue = Tuple[str, int, Optional[str]]


def plural(count: int, singular: str, plural_form: str | None = None) -> str:
	word = singular if count == 1 else (plural_form or f"{singular}s")
	return f"{count} {word}"


def accuracy_detail(wins: int, total: int, label: str) -> str:
	"""e.g. ``42% accuracy (5/12)``."""
	percent = round(100 * wins / total) if total else 0
	return f"{percent}% {label} ({wins}/{total})"


def score_for(category: LeaderboardCategory, tally: UserTally) -> Tuple[int, Optional[str]]:
	if category in MEDIA_BOARDS:
		points_category, singular, plural_form = MEDIA_BOARDS[category]
		count = points_policy.media_count(tally, points_category)
		return count * points_policy.MEDIA_WEIGHTS[points_category], plural(count, singular, plural_form)
	if category is LeaderboardCategory.ALL_TIME:
		total = points_policy.category_totals(tally)[Category.ALL_TIME]
		return total, f"{plural(tally.items_total, 'item')} logged"
	if category is LeaderboardCategory.REVIEWS:
		return tally.reviews * points_policy.W_REVIEW, plural(tally.reviews, "review")
	if category is LeaderboardCategory.PREDICTIONS:
		return tally.prediction_points, accuracy_detail(tally.prediction_wins, tally.prediction_count, "accuracy")
	if category is LeaderboardCategory.TRIVIA:
		return tally.trivia_points, accuracy_detail(tally.trivia_wins, tally.trivia_count, "correct")
	if category is LeaderboardCategory.POLLS:
		return tally.poll_points, plural(tally.poll_count, "vote")
	if category is LeaderboardCategory.BETS:
		return tally.bet_points, f"{plural(tally.bets_won, 'bet')} won"
	if category is LeaderboardCategory.REFERRALS:
		return tally.referrals * points_policy.W_REFERRAL, plural(tally.referrals, "referral")
	# overall is the engagement composite
	detail = f"{plural(tally.posts, 'post')}, {tally.participations} games played"
	return points_policy.engagement_points(tally), detail


def board_values(category: LeaderboardCategory, tallies: Dict[str, UserTally]) -> List[ScoredValue]:
	values: List[ScoredValue] = []
	for user_id, tally in tallies.items():
		score, detail = score_for(category, tally)
		if score > 0:
			values.append((user_id, score, detail))
	return values


def pool_values(participations: Iterable[Participation], pool_id: str) -> List[ScoredValue]:
	"""Points per user inside a single trivia challenge pool."""
	points: Dict[str, int] = defaultdict(int)
	answered: Dict[str, int] = defaultdict(int)
	wins: Dict[str, int] = defaultdict(int)
	for entry in participations:
		if entry.pool_id != pool_id:
			continue
		points[entry.user_id] += int(entry.points_earned or 0)
		answered[entry.user_id] += 1
		wins[entry.user_id] += 1 if entry.is_winner else 0
	return [
		(user_id, score, accuracy_detail(wins[user_id], answered[user_id], "correct"))
		for user_id, score in points.items()
		if score > 0
	]


def rank_rows(values: Sequence[ScoredValue]) -> List[LeaderboardRow]:
	"""Sort by score descending; ties keep their input order."""
	sorted_vals = sorted(values, key=lambda item: item[1], reverse=True)
	return [
		LeaderboardRow(rank=idx, user_id=user_id, score=score, detail=detail)
		for idx, (user_id, score, detail) in enumerate(sorted_vals, start=1)
	]

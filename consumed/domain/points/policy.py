"""Point weights and the pure scoring functions built on them."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Mapping, Optional

from consumed.domain.points.models import (
	MEDIA_CATEGORIES,
	ActivitySet,
	Category,
	EngagementBreakdown,
	UserTally,
)


# --- Consumption weights (points per logged item) ---
W_BOOK = 15
W_MOVIE = 8
W_TV = 10
W_MUSIC = 1
W_PODCAST = 3
W_GAME = 5
W_REVIEW = 10  # on top of the media weight

MEDIA_WEIGHTS: Dict[Category, int] = {
	Category.BOOKS: W_BOOK,
	Category.MOVIES: W_MOVIE,
	Category.TV: W_TV,
	Category.MUSIC: W_MUSIC,
	Category.PODCASTS: W_PODCAST,
	Category.GAMES: W_GAME,
}

# --- Social weights ---
W_FRIEND = 5
W_REFERRAL = 25

# --- Engagement composite ---
W_POST = 10
W_LIKE_RECEIVED = 2
W_COMMENT_RECEIVED = 3
W_LIKE_GIVEN = 2
W_COMMENT_MADE = 5
W_PARTICIPATION = 5
W_RANK_CREATED = 10

POOL_TYPE_TRIVIA = "trivia"
POOL_TYPE_POLL = "vote"

# Categories summed into all_time
SCORED_CATEGORIES = tuple(c for c in Category if c is not Category.ALL_TIME)


def bucket_for_pool_type(pool_type: Optional[str]) -> Category:
	"""trivia and vote pools have their own bucket; every other pool type is a prediction."""
	normalised = (pool_type or "").strip().lower()
	if normalised == POOL_TYPE_TRIVIA:
		return Category.TRIVIA
	if normalised == POOL_TYPE_POLL:
		return Category.POLLS
	return Category.PREDICTIONS


def friend_counts(activity: ActivitySet) -> Dict[str, int]:
	"""Distinct accepted counterparties per user, whichever column each user sits in."""
	pairs = {edge.as_pair() for edge in activity.friendships}
	counts: Dict[str, int] = defaultdict(int)
	for pair in pairs:
		if len(pair) != 2:
			continue
		for user_id in pair:
			counts[user_id] += 1
	return dict(counts)


def tally_activity(activity: ActivitySet) -> Dict[str, UserTally]:
	"""Group every record by acting user and count it."""
	tallies: Dict[str, UserTally] = defaultdict(UserTally)

	for item in activity.items:
		tally = tallies[item.user_id]
		tally.items_total += 1
		category = MEDIA_CATEGORIES.get((item.media_type or "").lower())
		if category is not None:
			tally.media[category.value] += 1
		if item.has_review:
			tally.reviews += 1

	for entry in activity.participations:
		tally = tallies[entry.user_id]
		points = int(entry.points_earned or 0)
		bucket = bucket_for_pool_type(entry.pool_type)
		if bucket is Category.TRIVIA:
			tally.trivia_points += points
			tally.trivia_count += 1
			tally.trivia_wins += 1 if entry.is_winner else 0
		elif bucket is Category.POLLS:
			tally.poll_points += points
			tally.poll_count += 1
		else:
			tally.prediction_points += points
			tally.prediction_count += 1
			tally.prediction_wins += 1 if entry.is_winner else 0

	for bet in activity.bets:
		tally = tallies[bet.user_id]
		tally.bet_points += int(bet.points_awarded or 0)
		tally.bets_won += 1

	for user_id, count in friend_counts(activity).items():
		tallies[user_id].friends = count

	for user_id, count in activity.referrals.items():
		tallies[user_id].referrals += count

	for post in activity.posts:
		tally = tallies[post.user_id]
		tally.posts += 1
		tally.likes_received += int(post.likes_count or 0)
		tally.comments_received += int(post.comments_count or 0)

	for user_id, count in activity.likes_given.items():
		tallies[user_id].likes_given += count
	for user_id, count in activity.comments_made.items():
		tallies[user_id].comments_made += count
	for user_id, count in activity.ranks_created.items():
		tallies[user_id].ranks_created += count

	return dict(tallies)


def media_count(tally: UserTally, category: Category) -> int:
	return tally.media.get(category.value, 0)


def engagement_points(tally: UserTally) -> int:
	return (
		W_POST * tally.posts
		+ W_LIKE_RECEIVED * tally.likes_received
		+ W_COMMENT_RECEIVED * tally.comments_received
		+ W_LIKE_GIVEN * tally.likes_given
		+ W_COMMENT_MADE * tally.comments_made
		# participation is also paid out in predictions/trivia/polls
		+ W_PARTICIPATION * tally.participations
		+ W_RANK_CREATED * tally.ranks_created
	)


def engagement_actions(tally: UserTally) -> int:
	return tally.posts + tally.likes_given + tally.comments_made + tally.participations + tally.ranks_created


def category_totals(tally: UserTally) -> Dict[Category, int]:
	totals: Dict[Category, int] = {
		category: media_count(tally, category) * weight for category, weight in MEDIA_WEIGHTS.items()
	}
	totals[Category.REVIEWS] = tally.reviews * W_REVIEW
	totals[Category.PREDICTIONS] = tally.prediction_points
	totals[Category.TRIVIA] = tally.trivia_points
	totals[Category.POLLS] = tally.poll_points
	totals[Category.BETS] = tally.bet_points
	totals[Category.FRIENDS] = tally.friends * W_FRIEND
	totals[Category.REFERRALS] = tally.referrals * W_REFERRAL
	totals[Category.ENGAGEMENT] = engagement_points(tally)
	totals[Category.ALL_TIME] = sum(totals[category] for category in SCORED_CATEGORIES)
	return {category: totals[category] for category in Category}


def category_counts(tally: UserTally) -> Dict[str, int]:
	counts: Dict[str, int] = {category.value: media_count(tally, category) for category in MEDIA_WEIGHTS}
	counts.update(
		{
			Category.REVIEWS.value: tally.reviews,
			Category.PREDICTIONS.value: tally.prediction_count,
			Category.TRIVIA.value: tally.trivia_count,
			Category.POLLS.value: tally.poll_count,
			Category.BETS.value: tally.bets_won,
			Category.FRIENDS.value: tally.friends,
			Category.REFERRALS.value: tally.referrals,
			Category.ENGAGEMENT.value: engagement_actions(tally),
			"total": tally.items_total,
		}
	)
	return counts


def engagement_breakdown(tally: UserTally) -> EngagementBreakdown:
	return EngagementBreakdown(
		posts=tally.posts,
		likes_received=tally.likes_received,
		comments_received=tally.comments_received,
		likes_given=tally.likes_given,
		comments_made=tally.comments_made,
		predictions_participated=tally.participations,
		ranks_created=tally.ranks_created,
	)


def score_map(tallies: Mapping[str, UserTally]) -> Dict[str, int]:
	"""all_time total for every user that has at least one record."""
	# Deliberately the full all_time formula, friends and referrals included, rather than a
	# consumption-only map: a higher reported total never ranks below a lower one.
	return {user_id: category_totals(tally)[Category.ALL_TIME] for user_id, tally in tallies.items()}


def rank_among(all_scores: Mapping[str, int], target_score: int) -> int:
	"""1 + number of users strictly above ``target_score``; equal scores share a rank."""
	return 1 + sum(1 for score in all_scores.values() if score > target_score)

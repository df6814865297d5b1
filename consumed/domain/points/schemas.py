"""Pydantic schemas for the compute-score API."""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from consumed.domain.points.models import ScoreResult


class EngagementBreakdownSchema(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	posts: int = 0
	likes_received: int = Field(default=0, alias="likesReceived")
	comments_received: int = Field(default=0, alias="commentsReceived")
	likes_given: int = Field(default=0, alias="likesGiven")
	comments_made: int = Field(default=0, alias="commentsMade")
	predictions_participated: int = Field(default=0, alias="predictionsParticipated")
	ranks_created: int = Field(default=0, alias="ranksCreated")


class RankSchema(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	global_rank: int = Field(..., ge=1, alias="global")
	total_users: int = Field(..., ge=0)


class PointsResponseSchema(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	success: bool = True
	points: Dict[str, int]
	counts: Dict[str, int]
	engagement_breakdown: EngagementBreakdownSchema = Field(..., alias="engagementBreakdown")
	rank: RankSchema

	@classmethod
	def from_result(cls, result: ScoreResult) -> "PointsResponseSchema":
		engagement = result.engagement
		return cls(
			points={category.value: value for category, value in result.totals.items()},
			counts=dict(result.counts),
			engagement_breakdown=EngagementBreakdownSchema(
				posts=engagement.posts,
				likes_received=engagement.likes_received,
				comments_received=engagement.comments_received,
				likes_given=engagement.likes_given,
				comments_made=engagement.comments_made,
				predictions_participated=engagement.predictions_participated,
				ranks_created=engagement.ranks_created,
			),
			rank=RankSchema(global_rank=result.rank.position, total_users=result.rank.total_users),
		)

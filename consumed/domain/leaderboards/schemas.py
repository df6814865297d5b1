"""Pydantic schemas for the leaderboards API."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from consumed.domain.leaderboards.models import LeaderboardPeriod, LeaderboardRow, LeaderboardScope


class LeaderboardEntrySchema(BaseModel):
	user_id: str
	username: Optional[str] = None
	display_name: Optional[str] = None
	score: int
	rank: int = Field(..., ge=1)
	detail: Optional[str] = None

	@classmethod
	def from_row(cls, row: LeaderboardRow) -> "LeaderboardEntrySchema":
		return cls(
			user_id=row.user_id,
			username=row.username,
			display_name=row.display_name,
			score=row.score,
			rank=row.rank,
			detail=row.detail,
		)


class LeaderboardsResponseSchema(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	categories: Dict[str, List[LeaderboardEntrySchema]]
	current_user_id: str = Field(..., alias="currentUserId")
	scope: LeaderboardScope
	period: LeaderboardPeriod

	@classmethod
	def build(
		cls,
		boards: Dict[str, List[LeaderboardRow]],
		*,
		current_user_id: str,
		scope: LeaderboardScope,
		period: LeaderboardPeriod,
	) -> "LeaderboardsResponseSchema":
		return cls(
			categories={name: [LeaderboardEntrySchema.from_row(row) for row in rows] for name, rows in boards.items()},
			current_user_id=current_user_id,
			scope=scope,
			period=period,
		)

"""Errors raised while building leaderboards."""

from __future__ import annotations

from fastapi import status

from consumed.domain.exceptions import ConsumedError


class InvalidLeaderboardQuery(ConsumedError):
	status_code = status.HTTP_400_BAD_REQUEST
	detail = "Invalid leaderboard query"

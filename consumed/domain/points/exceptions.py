"""Errors raised by the points engine."""

from __future__ import annotations

from fastapi import status

from consumed.domain.exceptions import ConsumedError


class FailedToFetchUserItems(ConsumedError):
	"""The target user's consumption items could not be read."""

	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
	detail = "Failed to fetch user items"

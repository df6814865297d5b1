"""Errors raised while resolving the calling user."""

from __future__ import annotations

from fastapi import status

from consumed.domain.exceptions import ConsumedError


class Unauthorized(ConsumedError):
	"""No valid caller identity was presented."""

	status_code = status.HTTP_401_UNAUTHORIZED
	detail = "Unauthorized"


class UserLookupFailed(ConsumedError):
	"""The identity-to-profile query failed for a reason other than not-found."""

	status_code = status.HTTP_401_UNAUTHORIZED
	detail = "User lookup failed"


class UserNotFound(ConsumedError):
	status_code = status.HTTP_404_NOT_FOUND
	detail = "User not found"


class UserCreationFailed(ConsumedError):
	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
	detail = "Failed to create user"

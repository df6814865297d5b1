"""Base error type shared by the domain packages."""

from __future__ import annotations

from fastapi import status


class ConsumedError(Exception):
	"""Base class for errors surfaced to API callers as ``{"error": detail}``."""

	status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
	detail: str = "internal_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail

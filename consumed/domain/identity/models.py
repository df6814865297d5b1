"""Domain models for app user profiles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass(slots=True)
class AppUser:
	"""Row of the ``users`` table as seen by the points backend."""

	id: str
	email: Optional[str] = None
	user_name: Optional[str] = None
	display_name: Optional[str] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "AppUser":
		return cls(
			id=str(record["id"]),
			email=record.get("email"),
			user_name=record.get("user_name"),
			display_name=record.get("display_name"),
		)

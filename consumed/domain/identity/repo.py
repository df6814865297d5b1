"""asyncpg access to the ``users`` table."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from consumed.domain.identity.models import AppUser
from consumed.infra.postgres import get_pool


class UsersRepository:
	"""Thin data-access layer around asyncpg."""

	async def get_by_email(self, email: str) -> Optional[AppUser]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT id, email, user_name, display_name FROM users WHERE email = $1",
				email,
			)
		return AppUser.from_record(dict(record)) if record else None

	async def create_user(
		self,
		*,
		user_id: str,
		email: str,
		user_name: str,
		first_name: str = "",
		last_name: str = "",
	) -> AppUser:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO users (id, email, user_name, first_name, last_name, display_name)
				VALUES ($1, $2, $3, $4, $5, $3)
				RETURNING id, email, user_name, display_name
				""",
				user_id,
				email,
				user_name,
				first_name,
				last_name,
			)
		return AppUser.from_record(dict(record))

	async def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, AppUser]:
		ids = list(dict.fromkeys(user_ids))
		if not ids:
			return {}
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT id, email, user_name, display_name FROM users WHERE id::text = ANY($1::text[])",
				ids,
			)
		return {str(row["id"]): AppUser.from_record(dict(row)) for row in rows}

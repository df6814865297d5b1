"""Resolve an authenticated identity to its app user profile."""

from __future__ import annotations

import logging
from typing import Optional

from consumed.domain.identity.exceptions import UserCreationFailed, UserLookupFailed, UserNotFound
from consumed.domain.identity.models import AppUser
from consumed.domain.identity.repo import UsersRepository
from consumed.infra.auth import AuthIdentity
from consumed.infra.postgres import DB_ERRORS
from consumed.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


def default_user_name(identity: AuthIdentity) -> str:
	if identity.user_name:
		return identity.user_name
	local_part = identity.email.split("@")[0]
	return local_part or "user"


class IdentityService:
	def __init__(self, repo: Optional[UsersRepository] = None) -> None:
		self._repo = repo or UsersRepository()

	async def resolve_app_user(self, identity: AuthIdentity, *, create_missing: bool = True) -> AppUser:
		"""Look the caller's profile up by email, creating it on first sight when allowed."""
		try:
			user = await self._repo.get_by_email(identity.email)
		except DB_ERRORS as exc:
			logger.warning("user_lookup_failed", extra={"auth_id": identity.id, "error": str(exc)})
			raise UserLookupFailed(f"User lookup failed: {exc}") from exc
		if user is not None:
			return user
		if not create_missing:
			raise UserNotFound()

		metadata = identity.user_metadata
		try:
			user = await self._repo.create_user(
				user_id=identity.id,
				email=identity.email,
				user_name=default_user_name(identity),
				first_name=str(metadata.get("first_name") or ""),
				last_name=str(metadata.get("last_name") or ""),
			)
		except DB_ERRORS as exc:
			logger.error("user_create_failed", extra={"auth_id": identity.id, "error": str(exc)})
			raise UserCreationFailed(f"Failed to create user: {exc}") from exc
		obs_metrics.inc_user_created()
		logger.info("user_created", extra={"app_user_id": user.id})
		return user

	async def require_user(self, user_id: str) -> AppUser:
		"""Fetch a profile by id; unknown ids raise ``UserNotFound``."""
		try:
			profiles = await self._repo.get_profiles([user_id])
		except DB_ERRORS as exc:
			logger.warning("user_lookup_failed", extra={"target_user_id": user_id, "error": str(exc)})
			raise UserLookupFailed(f"User lookup failed: {exc}") from exc
		user = profiles.get(user_id)
		if user is None:
			raise UserNotFound()
		return user

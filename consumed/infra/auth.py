"""Authentication helpers for FastAPI endpoints.

The caller is identified by a bearer access token issued by the auth provider.
Profile lookup (auth identity -> ``users`` row) lives in the identity domain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from consumed.domain.identity.exceptions import Unauthorized
from consumed.infra import jwt as jwt_helper
from consumed.obs import metrics as obs_metrics


@dataclass(slots=True)
class AuthIdentity:
	id: str
	email: str
	user_metadata: Dict[str, Any] = field(default_factory=dict)

	@property
	def user_name(self) -> Optional[str]:
		value = self.user_metadata.get("user_name")
		return str(value) if value else None


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthIdentity:
	"""Decode and validate an access JWT and return the caller identity."""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		obs_metrics.inc_auth_failure("invalid_token")
		raise Unauthorized()

	sub = str(payload.get("sub") or "").strip()
	email = str(payload.get("email") or "").strip()
	if not sub or not email:
		obs_metrics.inc_auth_failure("missing_claims")
		raise Unauthorized()
	metadata = payload.get("user_metadata")
	return AuthIdentity(
		id=sub,
		email=email,
		user_metadata=dict(metadata) if isinstance(metadata, dict) else {},
	)


async def get_current_identity(
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthIdentity:
	"""Resolve the authenticated caller; a valid bearer token is always required."""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)
	obs_metrics.inc_auth_failure("missing_token")
	raise Unauthorized()

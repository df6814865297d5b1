import asyncpg
import pytest

from consumed.api import points as points_api
from consumed.domain.identity.exceptions import UserCreationFailed, UserNotFound
from consumed.domain.identity.models import AppUser
from consumed.domain.points import policy
from consumed.domain.points.exceptions import FailedToFetchUserItems
from consumed.domain.points.models import ActivitySet, ConsumptionItem, GlobalRank, ScoreResult, SocialPost


def _result(user_id: str) -> ScoreResult:
	activity = ActivitySet(
		items=[ConsumptionItem(user_id, "book", notes="wow"), ConsumptionItem(user_id, "movie")],
		posts=[SocialPost(user_id, likes_count=3, comments_count=1)],
	)
	tally = policy.tally_activity(activity)[user_id]
	return ScoreResult(
		user_id=user_id,
		totals=policy.category_totals(tally),
		counts=policy.category_counts(tally),
		engagement=policy.engagement_breakdown(tally),
		rank=GlobalRank(position=3, total_users=40),
	)


def _patch_identity(monkeypatch, *, error=None, known_users=None):
	async def fake_resolve(identity, *, create_missing=True):
		if error is not None:
			raise error
		return AppUser(id="app-user-1", email=identity.email, user_name="reader", display_name="reader")

	async def fake_require(user_id):
		if known_users is not None and user_id not in known_users:
			raise UserNotFound()
		return AppUser(id=user_id)

	monkeypatch.setattr(points_api._identity, "resolve_app_user", fake_resolve)
	monkeypatch.setattr(points_api._identity, "require_user", fake_require)


def _patch_compute(monkeypatch, calls=None, *, error=None):
	async def fake_compute(target_user_id):
		if calls is not None:
			calls.append(target_user_id)
		if error is not None:
			raise error
		return _result(target_user_id)

	monkeypatch.setattr(points_api._service, "compute_score_and_rank", fake_compute)


@pytest.mark.asyncio
async def test_requires_bearer_token(api_client):
	response = await api_client.post("/calculate-user-points")

	assert response.status_code == 401
	assert response.json()["error"] == "Unauthorized"


@pytest.mark.asyncio
async def test_rejects_invalid_token(api_client):
	response = await api_client.get("/calculate-user-points", headers={"Authorization": "Bearer not-a-jwt"})

	assert response.status_code == 401


@pytest.mark.asyncio
async def test_scores_the_caller(api_client, auth_headers, monkeypatch):
	calls: list[str] = []
	_patch_identity(monkeypatch)
	_patch_compute(monkeypatch, calls)

	response = await api_client.post("/calculate-user-points", headers=auth_headers())

	assert response.status_code == 200
	payload = response.json()
	assert calls == ["app-user-1"]
	assert payload["success"] is True
	assert payload["points"]["books"] == 15
	assert payload["points"]["reviews"] == 10
	assert payload["points"]["engagement"] == 10 + 6 + 3
	assert payload["points"]["all_time"] == 15 + 8 + 10 + 19
	assert payload["counts"]["total"] == 2
	assert payload["engagementBreakdown"]["likesReceived"] == 3
	assert payload["engagementBreakdown"]["commentsReceived"] == 1
	assert payload["rank"] == {"global": 3, "total_users": 40}


@pytest.mark.asyncio
async def test_scores_explicit_target(api_client, auth_headers, monkeypatch):
	calls: list[str] = []
	_patch_identity(monkeypatch)
	_patch_compute(monkeypatch, calls)

	response = await api_client.get("/calculate-user-points?user_id=someone-else", headers=auth_headers())

	assert response.status_code == 200
	assert calls == ["someone-else"]


@pytest.mark.asyncio
async def test_creation_failure_is_ignored_for_explicit_target(api_client, auth_headers, monkeypatch):
	calls: list[str] = []
	_patch_identity(monkeypatch, error=UserCreationFailed("Failed to create user: boom"))
	_patch_compute(monkeypatch, calls)

	response = await api_client.get("/calculate-user-points?user_id=target-7", headers=auth_headers())

	assert response.status_code == 200
	assert calls == ["target-7"]


@pytest.mark.asyncio
async def test_creation_failure_for_caller_is_500(api_client, auth_headers, monkeypatch):
	_patch_identity(monkeypatch, error=UserCreationFailed("Failed to create user: duplicate key"))
	_patch_compute(monkeypatch)

	response = await api_client.post("/calculate-user-points", headers=auth_headers())

	assert response.status_code == 500
	assert response.json()["error"] == "Failed to create user: duplicate key"


@pytest.mark.asyncio
async def test_item_read_failure_is_500(api_client, auth_headers, monkeypatch):
	_patch_identity(monkeypatch)
	_patch_compute(monkeypatch, error=FailedToFetchUserItems())

	response = await api_client.post("/calculate-user-points", headers=auth_headers())

	assert response.status_code == 500
	assert response.json()["error"] == "Failed to fetch user items"


@pytest.mark.asyncio
async def test_unexpected_error_is_500_with_message(api_client, auth_headers, monkeypatch):
	_patch_identity(monkeypatch)
	_patch_compute(monkeypatch, error=RuntimeError("pool exhausted"))

	response = await api_client.post("/calculate-user-points", headers=auth_headers())

	assert response.status_code == 500
	assert response.json()["error"] == "pool exhausted"


@pytest.mark.asyncio
async def test_unknown_explicit_target_is_404(api_client, auth_headers, monkeypatch):
	calls: list[str] = []
	_patch_identity(monkeypatch, known_users={"app-user-1"})
	_patch_compute(monkeypatch, calls)

	response = await api_client.get("/calculate-user-points?user_id=does-not-exist", headers=auth_headers())

	assert response.status_code == 404
	assert response.json()["error"] == "User not found"
	assert calls == []


@pytest.mark.asyncio
async def test_caller_as_explicit_target_skips_extra_lookup(api_client, auth_headers, monkeypatch):
	calls: list[str] = []
	_patch_identity(monkeypatch, known_users=set())
	_patch_compute(monkeypatch, calls)

	response = await api_client.get("/calculate-user-points?user_id=app-user-1", headers=auth_headers())

	assert response.status_code == 200
	assert calls == ["app-user-1"]


@pytest.mark.asyncio
async def test_closing_pool_during_caller_lookup_is_401(api_client, auth_headers, monkeypatch):
	async def failing_lookup(email):
		raise asyncpg.InterfaceError("pool is closing")

	monkeypatch.setattr(points_api._identity._repo, "get_by_email", failing_lookup)

	response = await api_client.post("/calculate-user-points", headers=auth_headers())

	assert response.status_code == 401
	assert response.json()["error"] == "User lookup failed: pool is closing"


@pytest.mark.asyncio
async def test_unexpected_identity_error_is_500_json(api_client, auth_headers, monkeypatch):
	_patch_identity(monkeypatch, error=RuntimeError("resolver crashed"))
	_patch_compute(monkeypatch)

	response = await api_client.post("/calculate-user-points", headers=auth_headers())

	assert response.status_code == 500
	assert response.json()["error"] == "resolver crashed"

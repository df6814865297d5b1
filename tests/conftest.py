import sys
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure the package is importable when tests run from a source checkout
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
	sys.path.insert(0, str(REPO_ROOT))

from consumed.domain.points.models import ActivityFilter
from consumed.infra import jwt as jwt_helper
from consumed.infra import postgres
from consumed.main import app


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from consumed.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client


def make_token(sub: str = "auth-1", email: str = "reader@example.com", **metadata: Any) -> str:
	return jwt_helper.encode_access({"sub": sub, "email": email, "user_metadata": metadata})


@pytest.fixture
def auth_headers():
	def _build(sub: str = "auth-1", email: str = "reader@example.com", **metadata: Any) -> Dict[str, str]:
		return {"Authorization": f"Bearer {make_token(sub, email, **metadata)}"}

	return _build


class FakeActivityRepo:
	"""In-memory stand-in for ActivityRepository honouring scope and period filters."""

	def __init__(self) -> None:
		self.items: List[Any] = []
		self.participation_rows: List[Any] = []
		self.bets: List[Any] = []
		self.friendships: List[Any] = []
		self.referral_rows: List[Tuple[str, Optional[datetime]]] = []
		self.post_rows: List[Any] = []
		self.like_rows: List[Tuple[str, Optional[datetime]]] = []
		self.comment_rows: List[Tuple[str, Optional[datetime]]] = []
		self.rank_rows: List[Tuple[str, Optional[datetime]]] = []
		self.failures: Dict[str, Exception] = {}
		self.snapshots: Dict[str, Dict[str, int]] = {}
		self.calls: List[Tuple[str, ActivityFilter]] = []

	def _check(self, name: str, activity_filter: ActivityFilter) -> None:
		self.calls.append((name, activity_filter))
		if name in self.failures:
			raise self.failures[name]

	@staticmethod
	def _keep(activity_filter: ActivityFilter, user_ids: Tuple[str, ...], created_at: Optional[datetime]) -> bool:
		if activity_filter.user_ids is not None and not set(user_ids) & set(activity_filter.user_ids):
			return False
		if activity_filter.since is not None:
			stamp = created_at or datetime.now(timezone.utc)
			if stamp < activity_filter.since:
				return False
		return True

	def _records(self, name: str, rows: List[Any], activity_filter: ActivityFilter) -> List[Any]:
		self._check(name, activity_filter)
		return [row for row in rows if self._keep(activity_filter, (row.user_id,), getattr(row, "created_at", None))]

	def _counter(self, name: str, rows: List[Tuple[str, Optional[datetime]]], activity_filter: ActivityFilter) -> Counter:
		self._check(name, activity_filter)
		return Counter(user_id for user_id, created_at in rows if self._keep(activity_filter, (user_id,), created_at))

	async def list_items(self, activity_filter):
		return self._records("list_items", self.items, activity_filter)

	async def participations(self, activity_filter):
		return self._records("participations", self.participation_rows, activity_filter)

	async def won_bets(self, activity_filter):
		return self._records("won_bets", self.bets, activity_filter)

	async def accepted_friendships(self, activity_filter):
		self._check("accepted_friendships", activity_filter)
		return [
			edge
			for edge in self.friendships
			if self._keep(activity_filter, (edge.user_id, edge.friend_id), None)
		]

	async def rewarded_referrals(self, activity_filter):
		return self._counter("rewarded_referrals", self.referral_rows, activity_filter)

	async def posts(self, activity_filter):
		return self._records("posts", self.post_rows, activity_filter)

	async def likes_given(self, activity_filter):
		return self._counter("likes_given", self.like_rows, activity_filter)

	async def comments_made(self, activity_filter):
		return self._counter("comments_made", self.comment_rows, activity_filter)

	async def ranks_created(self, activity_filter):
		return self._counter("ranks_created", self.rank_rows, activity_filter)

	async def upsert_points(self, user_id, points):
		if "upsert_points" in self.failures:
			raise self.failures["upsert_points"]
		self.snapshots[user_id] = dict(points)


@pytest.fixture
def activity_repo() -> FakeActivityRepo:
	return FakeActivityRepo()

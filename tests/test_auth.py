import time

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt

from ascendia.api.deps import get_mission_service
from ascendia.config import settings
from ascendia.main import app

pytestmark = pytest.mark.asyncio


def make_token(sub: str = "user-9", audience: str = None, secret: str = None, ttl: int = 3600) -> str:
    claims = {
        "sub": sub,
        "email": "nine@ascendia.local",
        "aud": audience or settings.jwt_audience,
        "exp": int(time.time()) + ttl,
    }
    return jwt.encode(claims, secret or settings.supabase_jwt_secret, algorithm="HS256")


@pytest.fixture
async def anon_client(service):
    app.dependency_overrides[get_mission_service] = lambda: service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def test_missing_header(anon_client: AsyncClient):
    r = await anon_client.get("/v1/me")
    assert r.status_code == 401
    assert r.json()["detail"] == "Missing Authorization header"


@pytest.mark.parametrize(
    "token",
    [
        "not-a-jwt",
        make_token(secret="some-other-secret"),
        make_token(audience="anon"),
        make_token(ttl=-60),
    ],
)
async def test_rejected_tokens(anon_client: AsyncClient, token):
    r = await anon_client.get("/v1/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired session"


async def test_valid_token(anon_client: AsyncClient):
    r = await anon_client.get("/v1/me", headers={"Authorization": f"Bearer {make_token()}"})
    assert r.status_code == 200
    data = r.json()
    assert data["user"] == {"id": "user-9", "email": "nine@ascendia.local"}
    assert data["profile"]["user_id"] == "user-9"
    assert data["profile"]["email"] == "nine@ascendia.local"

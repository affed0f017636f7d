import pytest

pytest.importorskip("fastapi")

from conftest import auth_headers, signup
from nps_api.auth.security import create_access_token, decode_access_token, hash_password, verify_password
from nps_api.errors import AuthenticationError


def test_password_hash_round_trip():
    hashed = hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)


def test_access_token_claims_and_tampering():
    token = create_access_token("user-1", "a@example.com", "tenant-1", "ADMIN", secret="k")
    claims = decode_access_token(token, secret="k")
    assert (claims["sub"], claims["tenant_id"], claims["role"]) == ("user-1", "tenant-1", "ADMIN")
    with pytest.raises(AuthenticationError) as exc:
        decode_access_token(token, secret="other")
    assert exc.value.code == "INVALID_TOKEN"


def test_expired_token_is_invalid():
    token = create_access_token("user-1", "a@example.com", "tenant-1", "ADMIN", ttl_minutes=-1, secret="k")
    with pytest.raises(AuthenticationError):
        decode_access_token(token, secret="k")


def test_signup_login_me_flow(client):
    data = signup(client, email="Owner@Example.com", tenant_name="Acme")
    assert data["user"]["email"] == "owner@example.com"
    assert data["user"]["role"] == "ADMIN"
    assert "passwordHash" not in data["user"]

    res = client.post("/v1/auth/login", json={"email": "owner@example.com", "password": "s3cret-pass"})
    assert res.status_code == 200
    tokens = res.json()["data"]["tokens"]

    me = client.get("/v1/auth/me", headers=auth_headers(tokens))
    assert me.status_code == 200
    assert me.json()["data"]["tenantId"] == data["user"]["tenantId"]


def test_duplicate_signup_conflicts(client):
    signup(client)
    res = client.post("/v1/auth/signup", json={"email": "owner@example.com", "password": "another-pass", "name": "Dup"})
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "USER_EXISTS"


def test_bad_credentials(client):
    signup(client)
    res = client.post("/v1/auth/login", json={"email": "owner@example.com", "password": "wrong-pass"})
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "INVALID_CREDENTIALS"


def test_refresh_rotates_and_logout_revokes(client):
    tokens = signup(client)["tokens"]
    res = client.post("/v1/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert res.status_code == 200
    rotated = res.json()["data"]["tokens"]
    assert rotated["refreshToken"] != tokens["refreshToken"]

    reused = client.post("/v1/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert reused.status_code == 401
    assert reused.json()["error"]["code"] == "INVALID_TOKEN"

    assert client.post("/v1/auth/logout", json={"refreshToken": rotated["refreshToken"]}, headers=auth_headers(rotated)).status_code == 204
    assert client.post("/v1/auth/refresh", json={"refreshToken": rotated["refreshToken"]}).status_code == 401


def test_missing_and_invalid_tokens(client):
    res = client.get("/v1/surveys")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "MISSING_TOKEN"

    res = client.get("/v1/surveys", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "INVALID_TOKEN"


def test_login_rate_limited(client, monkeypatch):
    from nps_api.services import rate_limit

    monkeypatch.setattr(rate_limit.limiter, "check", lambda *a, **k: rate_limit.RateDecision(allowed=False, retry_after_seconds=12))
    res = client.post("/v1/auth/login", json={"email": "owner@example.com", "password": "x"})
    assert res.status_code == 429
    assert res.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert res.headers["Retry-After"] == "12"


def test_sliding_window_limiter():
    from nps_api.services.rate_limit import InMemoryRateLimiter

    now = [1000.0]
    limiter = InMemoryRateLimiter(clock=lambda: now[0])
    assert limiter.check("k", limit=2, window_seconds=60).allowed
    assert limiter.check("k", limit=2, window_seconds=60).allowed
    blocked = limiter.check("k", limit=2, window_seconds=60)
    assert not blocked.allowed
    assert blocked.retry_after_seconds == 60
    now[0] += 61
    assert limiter.check("k", limit=2, window_seconds=60).allowed


def test_rate_limit_keys_on_forwarded_client(client, monkeypatch):
    from nps_api.services import rate_limit

    keys = []

    def record(key, limit, window_seconds):
        keys.append(key)
        return rate_limit.RateDecision(allowed=True, retry_after_seconds=0)

    monkeypatch.setattr(rate_limit.limiter, "check", record)
    client.post("/v1/auth/login", json={"email": "owner@example.com", "password": "x"}, headers={"x-forwarded-for": "203.0.113.7, 10.0.0.1"})
    client.post("/v1/auth/login", json={"email": "owner@example.com", "password": "x"})
    assert keys == ["auth_login:203.0.113.7", "auth_login:testclient"]

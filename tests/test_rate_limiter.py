import pytest
import redis
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from mentorhub import rate_limiter


class FakePipeline:
    def __init__(self, store):
        self.store = store
        self.ops = []

    def set(self, key, value, ex=None):
        self.ops.append((key, value, ex))

    def execute(self):
        for key, value, ex in self.ops:
            self.store[key] = (str(value), ex)


class FakeRedis:
    def __init__(self, fail=False):
        self.store = {}
        self.fail = fail

    def get(self, key):
        if self.fail:
            raise redis.ConnectionError("down")
        return self.store.get(key, (None, None))[0]

    def ttl(self, key):
        return self.store.get(key, (None, -2))[1]

    def pipeline(self):
        if self.fail:
            raise redis.ConnectionError("down")
        return FakePipeline(self.store)


@pytest.fixture(autouse=True)
def clean_cache():
    rate_limiter.memory_cache.clear()
    yield
    rate_limiter.memory_cache.clear()


def test_allows_up_to_the_limit():
    client = FakeRedis()

    results = [rate_limiter.check_rate_limit("rl:test:1.2.3.4", 3, 60, client) for _ in range(4)]

    assert [allowed for allowed, _, _ in results] == [True, True, True, False]
    assert results[-1][1] == 3
    assert 0 < results[-1][2] <= 60
    # Counts are written back to Redis at most every sync interval
    assert "rl:test:1.2.3.4" not in client.store


def test_window_is_seeded_from_redis():
    client = FakeRedis()
    client.store["rl:test:seeded"] = ("5", 30)

    allowed, count, ttl = rate_limiter.check_rate_limit("rl:test:seeded", 5, 60, client)

    assert allowed is False
    assert count == 5
    assert ttl <= 30


def test_redis_errors_fall_back_to_memory():
    client = FakeRedis(fail=True)

    allowed, count, _ = rate_limiter.check_rate_limit("rl:test:offline", 2, 60, client)

    assert allowed is True
    assert count == 1


def test_dependency_returns_429_with_retry_after(monkeypatch):
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: FakeRedis())
    limited = rate_limiter.create_rate_limiter(limit=2, window_seconds=60, key_prefix="rl:demo")
    app = FastAPI()

    @app.get("/ping", dependencies=[Depends(limited)])
    async def ping():
        return {"ok": True}

    client = TestClient(app)
    assert client.get("/ping").status_code == 200
    assert client.get("/ping").status_code == 200

    response = client.get("/ping")
    assert response.status_code == 429
    assert response.json()["detail"]["limit"] == 2
    assert "Retry-After" in response.headers


def test_dependency_returns_503_when_redis_is_unavailable(monkeypatch):
    def unavailable():
        raise redis.ConnectionError("no redis")

    monkeypatch.setattr(rate_limiter, "get_redis_client", unavailable)
    limited = rate_limiter.create_rate_limiter(limit=2, window_seconds=60, key_prefix="rl:demo")
    app = FastAPI()

    @app.get("/ping", dependencies=[Depends(limited)])
    async def ping():
        return {"ok": True}

    response = TestClient(app).get("/ping")
    assert response.status_code == 503


def test_client_ip_prefers_forwarded_header():
    class FakeRequest:
        headers = {"X-Forwarded-For": "203.0.113.9, 10.0.0.1"}
        client = None

    assert rate_limiter.get_client_ip(FakeRequest()) == "203.0.113.9"

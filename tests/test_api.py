"""Tests for the HTTP routes."""

import pytest
from fastapi.testclient import TestClient

from dex_aggregator.main import app
from dex_aggregator.services.aggregation import (
    TokenAggregatorService,
    get_token_aggregator_service,
)
from dex_aggregator.services.base import ServiceUnavailableError
from tests.conftest import FakeProvider, make_token, ranked_tokens

BONK = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


@pytest.fixture
def use_providers(policy, memory_cache):
    def _use(*providers):
        service = TokenAggregatorService(
            providers=list(providers),
            cache=memory_cache,
            policy=policy,
            default_page_limit=20,
            max_page_limit=100,
        )
        app.dependency_overrides[get_token_aggregator_service] = lambda: service
        return service

    yield _use
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_list_tokens(client, use_providers):
    use_providers(FakeProvider("dexscreener", ranked_tokens(30)))

    response = client.get("/api/v1/tokens", params={"limit": 10, "min_volume": 100})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert len(body["data"]["tokens"]) == 10
    assert body["data"]["tokens"][0]["token_address"] == "TOKEN029"
    assert body["data"]["total"] == 28
    assert body["pagination"]["has_next"] is True
    assert body["filters"]["applied"]["min_volume"] == 100


def test_list_tokens_follows_cursor(client, use_providers):
    use_providers(FakeProvider("dexscreener", ranked_tokens(30)))

    first = client.get("/api/v1/tokens", params={"limit": 20}).json()
    second = client.get(
        "/api/v1/tokens",
        params={"limit": 20, "cursor": first["pagination"]["next_cursor"]},
    ).json()

    assert [t["token_address"] for t in second["data"]["tokens"]] == [
        f"TOKEN{i:03d}" for i in range(9, -1, -1)
    ]
    assert second["pagination"]["next_cursor"] is None


def test_list_tokens_rejects_bad_sort(client, use_providers):
    use_providers(FakeProvider("dexscreener", ranked_tokens(3)))

    assert client.get("/api/v1/tokens", params={"sort_by": "hype"}).status_code == 422


def test_all_sources_down_is_503(client, use_providers):
    use_providers(
        FakeProvider("dexscreener", error=ServiceUnavailableError("dexscreener", "down")),
        FakeProvider("geckoterminal", error=ServiceUnavailableError("geckoterminal", "down")),
    )

    response = client.get("/api/v1/tokens")

    assert response.status_code == 503
    detail = response.json()["detail"]
    assert detail["retryable"] is True
    assert detail["failed_sources"] == ["dexscreener", "geckoterminal"]


def test_get_token(client, use_providers):
    use_providers(FakeProvider("dexscreener", [make_token(BONK, token_name="Bonk")]))

    response = client.get(f"/api/v1/tokens/{BONK}")

    assert response.status_code == 200
    assert response.json()["data"]["token_name"] == "Bonk"


def test_get_unknown_token_is_404(client, use_providers):
    use_providers(FakeProvider("dexscreener", []))

    assert client.get(f"/api/v1/tokens/{BONK}").status_code == 404


def test_trending_keeps_gainers_only(client, use_providers):
    use_providers(
        FakeProvider(
            "dexscreener",
            [
                make_token("UP", volume_sol=50.0, price_1hr_change=4.0),
                make_token("DOWN", volume_sol=50.0, price_1hr_change=-4.0),
            ],
        )
    )

    body = client.get("/api/v1/tokens/trending").json()

    assert [t["token_address"] for t in body["data"]["tokens"]] == ["UP"]


def test_search(client, use_providers):
    use_providers(
        FakeProvider(
            "dexscreener",
            [make_token("AAA", token_name="Bonk"), make_token("BBB", token_name="Dogwifhat")],
        )
    )

    body = client.get("/api/v1/tokens/search/bonk").json()

    assert body["data"]["total"] == 1
    assert body["data"]["tokens"][0]["token_address"] == "AAA"


def test_stats_summary(client, use_providers):
    use_providers(FakeProvider("dexscreener", ranked_tokens(4)))

    body = client.get("/api/v1/tokens/stats/summary").json()

    assert body["data"]["total_tokens"] == 4
    assert body["data"]["total_volume"] == 300.0

# mypy: ignore-errors
"""Tests for the optimistic reconciliation client."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from mediagate.client import OptimisticCache, ReactionsClient, ReactionsClientError, ReactionView


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _payload(content_id: str, total: int, held: list[str], liked: bool = False) -> dict:
    counts = {"LIKE": int(liked), "LOVE": 0, "FIRE": 0, "WOW": 0, "SMILE": 0}
    counts.update(dict.fromkeys(held, 1))
    return {
        "contentId": content_id,
        "stats": {"counts": counts, "total": total},
        "userState": {"userHasLiked": liked, "userReactionTypes": held},
    }


def test_cache_applies_and_expires() -> None:
    clock = FakeClock()
    cache = OptimisticCache(ttl_seconds=5, clock=clock)
    cache.apply("c1", 1)
    assert cache.displayed_total("c1", 10) == 11

    clock.now = 4.9
    cache.apply("c1", -1)
    assert cache.get("c1") == 0

    cache.apply("c1", 1)
    clock.now = 10.0
    assert cache.displayed_total("c1", 10) == 10
    assert len(cache) == 0


def test_cache_never_displays_negative_totals() -> None:
    cache = OptimisticCache(ttl_seconds=5, clock=FakeClock())
    cache.apply("c1", -1)
    assert cache.displayed_total("c1", 0) == 0


def test_cache_purge_and_discard() -> None:
    clock = FakeClock()
    cache = OptimisticCache(ttl_seconds=1, clock=clock)
    cache.apply("a", 1)
    cache.apply("b", 1)
    cache.discard("a")
    assert cache.get("a") == 0
    clock.now = 2
    assert cache.purge_expired() == 1


async def test_toggle_adopts_server_stats() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body == {"contentId": "c1", "userId": "guest_x", "type": "LOVE"}
        return httpx.Response(200, json=_payload("c1", 3, ["LOVE"]))

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
    async with ReactionsClient("guest_x", http_client=http, timeout_seconds=1) as client:
        view = await client.toggle("c1", "love")
        assert view.total == 3
        assert view.user_reaction_types == ("LOVE",)
        assert client.deltas.get("c1") == 0
        assert client.view("c1").pending is False
    await http.aclose()


async def test_toggle_shows_delta_while_in_flight() -> None:
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/stats"):
            return httpx.Response(200, json=_payload("c1", 5, []))
        await release.wait()
        return httpx.Response(200, json=_payload("c1", 6, ["FIRE"]))

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
    client = ReactionsClient("u1", http_client=http, timeout_seconds=5)
    await client.fetch_stats("c1")

    toggle = asyncio.create_task(client.toggle("c1", "FIRE"))
    await asyncio.sleep(0)
    optimistic = client.view("c1")
    assert optimistic.total == 6
    assert optimistic.pending is True

    release.set()
    view = await toggle
    assert view.total == 6
    assert client.view("c1").pending is False
    await client.close()
    await http.aclose()


async def test_toggle_rolls_back_on_failure() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/stats"):
            return httpx.Response(200, json=_payload("c1", 2, ["LOVE"]))
        return httpx.Response(503, json={"detail": "Reaction store is busy, retry the toggle"})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
    client = ReactionsClient("u1", http_client=http, timeout_seconds=1)
    before = await client.fetch_stats("c1")

    with pytest.raises(ReactionsClientError) as excinfo:
        await client.toggle("c1", "LOVE")

    assert excinfo.value.status_code == 503
    assert client.view("c1") == before
    assert client.deltas.get("c1") == 0
    await client.close()
    await http.aclose()


async def test_timeout_discards_delta_and_late_result_still_lands() -> None:
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return httpx.Response(200, json=_payload("c1", 1, ["WOW"]))

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
    client = ReactionsClient("u1", http_client=http, timeout_seconds=0.01)

    view = await client.toggle("c1", "WOW")
    assert view.total == 0
    assert view.pending is False
    assert client.deltas.get("c1") == 0

    release.set()
    await client.close()
    assert client.view("c1").total == 1
    await http.aclose()


def test_delta_rules() -> None:
    client = ReactionsClient("u1", base_url="http://test")
    empty = ReactionView(content_id="c1")
    holding = ReactionView(content_id="c1", user_reaction_types=("LOVE",))
    assert client.delta_for(empty, "LIKE") == 0
    assert client.delta_for(empty, "FIRE") == 1
    assert client.delta_for(holding, "LOVE") == -1
    assert client.delta_for(holding, "FIRE") == 1
    client.exclusive_expressive = True
    assert client.delta_for(holding, "FIRE") == 0


async def test_bulk_totals() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"contentIds": ["a", "b"]}
        return httpx.Response(200, json={"totals": {"a": 2, "b": 0}})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
    client = ReactionsClient("u1", http_client=http)
    assert await client.bulk_totals(["a", "b"]) == {"a": 2, "b": 0}
    await http.aclose()


async def test_account_requests_carry_the_bearer_token() -> None:
    seen: list[str | None] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization"))
        return httpx.Response(200, json=_payload("c1", 1, ["LOVE"]))

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
    client = ReactionsClient("u1", access_token="tok", http_client=http, timeout_seconds=1)
    await client.toggle("c1", "LOVE")
    await client.fetch_stats("c1")
    assert seen == ["Bearer tok", "Bearer tok"]
    await http.aclose()

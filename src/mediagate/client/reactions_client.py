"""Async HTTP client that gives instant reaction feedback without drifting.

Protocol for :meth:`ReactionsClient.toggle`:

1. Show ``server total + delta`` right away (``delta`` is +1/-1 for
   expressive reactions, 0 for LIKE, which does not count toward the total).
2. Send the authoritative toggle.
3. On a response, drop the delta and adopt the server stats. If the response
   takes longer than the timeout, drop the delta anyway and let the request
   finish in the background; its result still replaces the cached stats.
4. On failure, drop the delta and restore the stats seen before the click.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any

import httpx

from mediagate.client.optimistic import Clock, OptimisticCache
from mediagate.core.settings import settings

logger = logging.getLogger(__name__)

REACTION_TYPES = ("LIKE", "LOVE", "FIRE", "WOW", "SMILE")


class ReactionsClientError(RuntimeError):
    """Raised when the server rejects or fails an authoritative call."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class ReactionView:
    """What the UI should render for one item."""

    content_id: str
    counts: dict[str, int] = field(default_factory=lambda: dict.fromkeys(REACTION_TYPES, 0))
    total: int = 0
    user_has_liked: bool = False
    user_reaction_types: tuple[str, ...] = ()
    pending: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ReactionView:
        stats = payload.get("stats") or {}
        user_state = payload.get("userState") or {}
        counts = dict.fromkeys(REACTION_TYPES, 0)
        counts.update({key: int(value) for key, value in (stats.get("counts") or {}).items()})
        return cls(
            content_id=payload["contentId"],
            counts=counts,
            total=int(stats.get("total", 0)),
            user_has_liked=bool(user_state.get("userHasLiked", False)),
            user_reaction_types=tuple(user_state.get("userReactionTypes") or ()),
        )


class ReactionsClient:
    """Reaction API client holding a small per-item view cache."""

    def __init__(
        self,
        user_id: str,
        *,
        base_url: str = "",
        access_token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float | None = None,
        delta_ttl_seconds: float | None = None,
        exclusive_expressive: bool = False,
        clock: Clock | None = None,
    ) -> None:
        self.user_id = user_id
        self.timeout_seconds = (
            settings.optimistic_timeout_ms / 1000 if timeout_seconds is None else timeout_seconds
        )
        self.exclusive_expressive = exclusive_expressive
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url)
        # Accounts react under their bearer token; guest ids need none.
        self._auth_headers = (
            {"Authorization": f"Bearer {access_token}"} if access_token else {}
        )
        cache_kwargs: dict[str, Any] = {"ttl_seconds": delta_ttl_seconds}
        if clock is not None:
            cache_kwargs["clock"] = clock
        self.deltas = OptimisticCache(**cache_kwargs)
        self._views: dict[str, ReactionView] = {}
        self._in_flight: set[asyncio.Task[ReactionView]] = set()

    async def __aenter__(self) -> ReactionsClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Wait for background toggles, then close an owned HTTP client."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
        if self._owns_http_client:
            await self._http.aclose()

    # Reads

    def view(self, content_id: str) -> ReactionView:
        """Return the cached server view with any live delta applied."""
        base = self._views.get(content_id) or ReactionView(content_id=content_id)
        delta = self.deltas.get(content_id)
        if delta == 0:
            return base
        return replace(
            base,
            total=self.deltas.displayed_total(content_id, base.total),
            pending=True,
        )

    async def fetch_stats(self, content_id: str) -> ReactionView:
        """Load server stats for one item and cache them."""
        payload = await self._request(
            "GET",
            "/api/v1/reactions/stats",
            params={"contentId": content_id, "userId": self.user_id},
        )
        view = ReactionView.from_payload(payload)
        self._views[content_id] = view
        return view

    async def bulk_totals(self, content_ids: list[str]) -> dict[str, int]:
        """Return LIKE-excluded totals for many items in one request."""
        payload = await self._request(
            "POST",
            "/api/v1/reactions/bulk",
            json={"contentIds": list(content_ids)},
        )
        return {key: int(value) for key, value in payload.get("totals", {}).items()}

    # Writes

    def delta_for(self, view: ReactionView, reaction_type: str) -> int:
        """Return the change in total that toggling ``reaction_type`` would cause."""
        if reaction_type == "LIKE":
            return 0
        if reaction_type in view.user_reaction_types:
            return -1
        if self.exclusive_expressive and view.user_reaction_types:
            return 0
        return 1

    async def toggle(self, content_id: str, reaction_type: str) -> ReactionView:
        """Toggle a reaction with optimistic feedback; see the module docstring.

        Raises:
            ReactionsClientError: If the server rejects the toggle. The view is
                rolled back to its pre-click state first.
        """
        reaction_type = reaction_type.upper()
        previous = self._views.get(content_id)
        base = previous or ReactionView(content_id=content_id)
        self.deltas.apply(content_id, self.delta_for(base, reaction_type))

        task = asyncio.ensure_future(self._send_toggle(content_id, reaction_type))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        try:
            view = await asyncio.wait_for(asyncio.shield(task), self.timeout_seconds)
        except asyncio.TimeoutError:
            self.deltas.discard(content_id)
            task.add_done_callback(self._adopt_late_result)
            logger.debug("Toggle on %s still running after %.3fs", content_id, self.timeout_seconds)
            return self.view(content_id)
        except (httpx.HTTPError, ReactionsClientError):
            self.deltas.discard(content_id)
            if previous is None:
                self._views.pop(content_id, None)
            else:
                self._views[content_id] = previous
            raise

        self.deltas.discard(content_id)
        return view

    async def _send_toggle(self, content_id: str, reaction_type: str) -> ReactionView:
        payload = await self._request(
            "POST",
            "/api/v1/reactions/toggle",
            json={"contentId": content_id, "userId": self.user_id, "type": reaction_type},
        )
        view = ReactionView.from_payload(payload)
        self._views[content_id] = view
        return view

    def _adopt_late_result(self, task: asyncio.Task[ReactionView]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # The delta is already gone; the cached view stays at its last server value.
            logger.warning("Background toggle failed: %s", exc)

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._http.request(
                method, path, headers=self._auth_headers, **kwargs
            )
        except httpx.HTTPError as err:
            raise ReactionsClientError(f"{method} {path} failed: {err}") from err
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise ReactionsClientError(str(detail), status_code=response.status_code)
        return response.json()

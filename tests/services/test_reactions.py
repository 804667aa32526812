# mypy: ignore-errors
"""Tests for the reaction store and aggregation reader."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from mediagate.models import Reaction, ReactionType
from mediagate.services.errors import (
    BatchTooLargeError,
    NotFoundError,
    TransientStoreError,
    UnauthorizedError,
    ValidationError,
)
from mediagate.services.reactions import ReactionService, parse_reaction_type


def _row_count(db_session, content_id: str) -> int:
    return db_session.scalar(
        select(func.count(Reaction.id)).where(Reaction.content_id == content_id)
    )


def test_toggle_on_then_off(db_session, public_content) -> None:
    service = ReactionService(db_session)

    on = service.toggle_reaction(public_content.id, "user-a", "FIRE")
    assert on.stats.counts[ReactionType.FIRE] == 1
    assert on.stats.total == 1
    assert on.user_state.user_reaction_types == [ReactionType.FIRE]

    off = service.toggle_reaction(public_content.id, "user-a", "FIRE")
    assert off.stats.counts[ReactionType.FIRE] == 0
    assert off.stats.total == 0
    assert off.user_state.user_reaction_types == []
    assert _row_count(db_session, public_content.id) == 0


def test_double_toggle_parity(db_session, public_content) -> None:
    service = ReactionService(db_session)
    results = [
        service.toggle_reaction(public_content.id, "user-a", ReactionType.FIRE).stats.total
        for _ in range(3)
    ]
    assert results == [1, 0, 1]
    assert _row_count(db_session, public_content.id) == 1


def test_total_excludes_like(db_session, public_content) -> None:
    service = ReactionService(db_session)
    for reaction_type in ("LIKE", "LOVE", "FIRE"):
        snapshot = service.toggle_reaction(public_content.id, "user-a", reaction_type)

    assert snapshot.stats.total == 2
    assert snapshot.stats.counts[ReactionType.LIKE] == 1
    assert snapshot.user_state.user_has_liked is True
    assert snapshot.user_state.user_reaction_types == [ReactionType.FIRE, ReactionType.LOVE]


def test_like_and_expressive_types_are_independent(db_session, public_content) -> None:
    service = ReactionService(db_session)
    service.toggle_reaction(public_content.id, "user-a", "LIKE")
    snapshot = service.toggle_reaction(public_content.id, "user-a", "WOW")
    snapshot = service.toggle_reaction(public_content.id, "user-a", "SMILE")
    assert snapshot.user_state.user_has_liked is True
    assert set(snapshot.user_state.user_reaction_types) == {ReactionType.WOW, ReactionType.SMILE}
    assert snapshot.stats.total == 2


def test_exclusive_expressive_mode_replaces_previous_reaction(db_session, public_content) -> None:
    service = ReactionService(db_session, exclusive_expressive=True)
    service.toggle_reaction(public_content.id, "user-a", "LIKE")
    service.toggle_reaction(public_content.id, "user-a", "LOVE")
    snapshot = service.toggle_reaction(public_content.id, "user-a", "FIRE")

    assert snapshot.user_state.user_reaction_types == [ReactionType.FIRE]
    assert snapshot.user_state.user_has_liked is True
    assert snapshot.stats.counts[ReactionType.LOVE] == 0
    assert snapshot.stats.total == 1


def test_stats_do_not_leak_other_users(db_session, public_content) -> None:
    service = ReactionService(db_session)
    service.toggle_reaction(public_content.id, "user-a", "LOVE")
    service.toggle_reaction(public_content.id, "user-a", "LIKE")

    snapshot = service.read_snapshot(public_content.id, "user-b")
    assert snapshot.stats.total == 1
    assert snapshot.stats.counts[ReactionType.LIKE] == 1
    assert snapshot.user_state.user_has_liked is False
    assert snapshot.user_state.user_reaction_types == []


def test_toggle_unknown_content_is_not_found(db_session) -> None:
    service = ReactionService(db_session)
    with pytest.raises(NotFoundError):
        service.toggle_reaction("never-registered", "user-a", "LIKE")
    assert db_session.scalar(select(func.count(Reaction.id))) == 0


@pytest.mark.parametrize("user_id", [None, "", "   "])
def test_toggle_requires_a_user(db_session, public_content, user_id) -> None:
    with pytest.raises(UnauthorizedError):
        ReactionService(db_session).toggle_reaction(public_content.id, user_id, "LIKE")


def test_anonymous_users_may_react_unless_disabled(db_session, public_content, guest_id) -> None:
    snapshot = ReactionService(db_session).toggle_reaction(public_content.id, guest_id, "LOVE")
    assert snapshot.stats.total == 1

    strict = ReactionService(db_session, allow_anonymous=False)
    with pytest.raises(UnauthorizedError):
        strict.toggle_reaction(public_content.id, guest_id, "LOVE")


def test_unknown_type_is_rejected_without_writing(db_session, public_content) -> None:
    with pytest.raises(ValidationError):
        ReactionService(db_session).toggle_reaction(public_content.id, "user-a", "ANGRY")
    assert _row_count(db_session, public_content.id) == 0


def test_parse_reaction_type_is_case_insensitive() -> None:
    assert parse_reaction_type("fire") is ReactionType.FIRE
    assert parse_reaction_type(" Like ") is ReactionType.LIKE


def test_concurrent_insert_is_resolved_as_a_toggle(db_session, public_content, monkeypatch) -> None:
    """A request that missed a committed row hits the unique key and re-runs as a removal."""
    service = ReactionService(db_session)
    service.toggle_reaction(public_content.id, "user-a", "FIRE")

    real_find = ReactionService._find_existing
    calls = {"n": 0}

    def stale_then_real(self, content_id, user_id, reaction):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_find(self, content_id, user_id, reaction)

    monkeypatch.setattr(ReactionService, "_find_existing", stale_then_real)
    snapshot = service.toggle_reaction(public_content.id, "user-a", "FIRE")

    assert calls["n"] == 2
    assert snapshot.stats.total == 0
    assert _row_count(db_session, public_content.id) == 0


def test_repeated_collisions_raise_transient_error(db_session, public_content, monkeypatch) -> None:
    service = ReactionService(db_session, max_attempts=2)
    service.toggle_reaction(public_content.id, "user-a", "FIRE")
    monkeypatch.setattr(ReactionService, "_find_existing", lambda *args: None)

    with pytest.raises(TransientStoreError):
        service.toggle_reaction(public_content.id, "user-a", "FIRE")


def test_lock_timeout_is_transient(db_session, public_content, monkeypatch) -> None:
    def locked(self, content_id):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(ReactionService, "_lock_content", locked)
    with pytest.raises(TransientStoreError):
        ReactionService(db_session).toggle_reaction(public_content.id, "user-a", "LIKE")


def test_stats_for_unknown_content_are_zero(db_session) -> None:
    snapshot = ReactionService(db_session).read_snapshot("unknown-id", "user-a")
    assert snapshot.stats.total == 0
    assert all(count == 0 for count in snapshot.stats.counts.values())


def test_bulk_totals(db_session, public_content, other_content) -> None:
    service = ReactionService(db_session)
    service.toggle_reaction(public_content.id, "user-a", "LOVE")
    service.toggle_reaction(public_content.id, "user-b", "FIRE")
    service.toggle_reaction(public_content.id, "user-b", "LIKE")
    service.toggle_reaction(other_content.id, "user-a", "LIKE")
    service.toggle_reaction(other_content.id, "user-a", "WOW")

    totals = service.get_bulk_totals([public_content.id, other_content.id, "unknown"])
    assert totals == {public_content.id: 2, other_content.id: 1, "unknown": 0}


def test_bulk_totals_edge_cases(db_session, public_content) -> None:
    service = ReactionService(db_session, bulk_max_batch_size=3)
    assert service.get_bulk_totals([]) == {}
    assert service.get_bulk_totals([public_content.id, public_content.id]) == {
        public_content.id: 0
    }
    with pytest.raises(BatchTooLargeError):
        service.get_bulk_totals(["a", "b", "c", "d"])
    with pytest.raises(ValidationError):
        service.get_bulk_totals(["not valid!"])


def test_explicit_limits_are_not_replaced_by_defaults(db_session, public_content) -> None:
    service = ReactionService(db_session, bulk_max_batch_size=0)
    assert service.bulk_max_batch_size == 0
    with pytest.raises(BatchTooLargeError):
        service.get_bulk_totals([public_content.id])

    with pytest.raises(ValueError):
        ReactionService(db_session, max_attempts=0)


def test_profile_total(db_session, public_content, other_content) -> None:
    service = ReactionService(db_session)
    service.toggle_reaction(public_content.id, "user-a", "LOVE")
    service.toggle_reaction(other_content.id, "user-a", "SMILE")
    service.toggle_reaction(other_content.id, "user-b", "LIKE")

    assert service.get_profile_total(public_content.owner_profile_id) == 2
    assert service.get_profile_total("someone-else") == 0


def test_scenario_two_users(db_session, public_content) -> None:
    service = ReactionService(db_session)
    assert service.toggle_reaction(public_content.id, "user-a", "LOVE").stats.total == 1
    assert service.toggle_reaction(public_content.id, "user-b", "FIRE").stats.total == 2
    assert service.toggle_reaction(public_content.id, "user-a", "LOVE").stats.total == 1
    assert service.get_bulk_totals([public_content.id]) == {public_content.id: 1}

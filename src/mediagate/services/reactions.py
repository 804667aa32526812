"""Reaction storage and aggregation.

Toggles are check-then-act inside one transaction. The content row is locked
first so concurrent toggles on the same item run one after the other, and the
``(content_id, user_id, type)`` unique constraint catches anything the lock
does not (databases that ignore ``FOR UPDATE``). A constraint violation means
another request committed first; the toggle is then re-run against the
committed state instead of being reported as an error.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from mediagate.core.security import is_anonymous_id
from mediagate.core.settings import settings
from mediagate.models import Content, Reaction, ReactionType
from mediagate.services.errors import (
    BatchTooLargeError,
    NotFoundError,
    TransientStoreError,
    UnauthorizedError,
    ValidationError,
)
from mediagate.services.identity import validate_raw_id

logger = logging.getLogger(__name__)

MAX_USER_ID_LENGTH = 128
EXPRESSIVE_TYPES = tuple(t for t in ReactionType if t.is_expressive)


def parse_reaction_type(value: str | ReactionType) -> ReactionType:
    """Return the reaction type named by ``value`` (case-insensitive)."""
    if isinstance(value, ReactionType):
        return value
    try:
        return ReactionType(str(value).strip().upper())
    except ValueError as err:
        raise ValidationError(f"Unknown reaction type: {value!r}") from err


@dataclass
class ReactionStats:
    """Per-content counters.

    ``counts`` covers every type, LIKE included. ``total`` is the number of
    expressive reactions only; likes are surfaced through ``user_has_liked``.
    """

    counts: dict[ReactionType, int] = field(
        default_factory=lambda: {reaction_type: 0 for reaction_type in ReactionType}
    )

    @property
    def total(self) -> int:
        return sum(
            count for reaction_type, count in self.counts.items() if reaction_type.is_expressive
        )


@dataclass
class UserReactionState:
    """What one viewer has done on one item; never names other users."""

    user_has_liked: bool = False
    user_reaction_types: list[ReactionType] = field(default_factory=list)


@dataclass
class ReactionSnapshot:
    """Stats and viewer state read in the same transaction."""

    content_id: str
    stats: ReactionStats
    user_state: UserReactionState


class ReactionService:
    """Toggles reactions and reads aggregate counters."""

    def __init__(
        self,
        session: Session,
        *,
        max_attempts: int | None = None,
        exclusive_expressive: bool | None = None,
        allow_anonymous: bool | None = None,
        bulk_max_batch_size: int | None = None,
    ) -> None:
        self.session = session
        self.max_attempts = (
            settings.toggle_max_attempts if max_attempts is None else max_attempts
        )
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.exclusive_expressive = (
            settings.exclusive_expressive_reactions
            if exclusive_expressive is None
            else exclusive_expressive
        )
        self.allow_anonymous = (
            settings.allow_anonymous_reactions if allow_anonymous is None else allow_anonymous
        )
        self.bulk_max_batch_size = (
            settings.bulk_max_batch_size if bulk_max_batch_size is None else bulk_max_batch_size
        )

    # Writes

    def toggle_reaction(
        self,
        content_id: str,
        user_id: str | None,
        reaction_type: str | ReactionType,
    ) -> ReactionSnapshot:
        """Flip one reaction on or off and return fresh stats.

        Raises:
            UnauthorizedError: If ``user_id`` is missing or anonymous identities
                are not accepted.
            ValidationError: On an unknown reaction type or malformed id.
            NotFoundError: If the content is not registered.
            TransientStoreError: On lock timeouts or repeated write collisions.
        """
        user_id = self.require_user(user_id)
        reaction = parse_reaction_type(reaction_type)
        content_id = validate_raw_id(content_id)

        for attempt in range(1, self.max_attempts + 1):
            try:
                with self.session.begin_nested():
                    self._lock_content(content_id)
                    toggled_on = self._apply_toggle(content_id, user_id, reaction)
                break
            except IntegrityError:
                logger.info(
                    "Concurrent toggle of %s on %s by %s, re-reading (attempt %d/%d)",
                    reaction.value,
                    content_id,
                    user_id,
                    attempt,
                    self.max_attempts,
                )
            except OperationalError as err:
                self.session.rollback()
                logger.warning("Store unavailable while toggling on %s: %s", content_id, err)
                raise TransientStoreError("Reaction store is busy, retry the toggle") from err
        else:
            self.session.rollback()
            raise TransientStoreError("Could not apply toggle after repeated collisions")

        snapshot = self.read_snapshot(content_id, user_id)
        self.session.commit()
        logger.debug(
            "%s %s on %s by %s",
            "Added" if toggled_on else "Removed",
            reaction.value,
            content_id,
            user_id,
        )
        return snapshot

    def require_user(self, user_id: str | None) -> str:
        """Return the trimmed viewer id or raise if it may not react."""
        user_id = (user_id or "").strip()
        if not user_id:
            raise UnauthorizedError("A viewer identity is required to react")
        if len(user_id) > MAX_USER_ID_LENGTH:
            raise ValidationError("userId is too long")
        if is_anonymous_id(user_id) and not self.allow_anonymous:
            raise UnauthorizedError("Anonymous visitors cannot react")
        return user_id

    def _lock_content(self, content_id: str) -> None:
        found = self.session.scalar(
            select(Content.id).where(Content.id == content_id).with_for_update()
        )
        if found is None:
            raise NotFoundError(f"Content {content_id} not found")

    def _find_existing(
        self,
        content_id: str,
        user_id: str,
        reaction: ReactionType,
    ) -> Reaction | None:
        return self.session.scalars(
            select(Reaction).where(
                Reaction.content_id == content_id,
                Reaction.user_id == user_id,
                Reaction.type == reaction.value,
            )
        ).first()

    def _apply_toggle(self, content_id: str, user_id: str, reaction: ReactionType) -> bool:
        """Delete the row if present, insert it otherwise. Returns True when inserted."""
        existing = self._find_existing(content_id, user_id, reaction)
        if existing is not None:
            self.session.delete(existing)
            self.session.flush()
            return False

        if reaction.is_expressive and self.exclusive_expressive:
            self.session.execute(
                delete(Reaction).where(
                    Reaction.content_id == content_id,
                    Reaction.user_id == user_id,
                    Reaction.type.in_([t.value for t in EXPRESSIVE_TYPES if t is not reaction]),
                )
            )
        self.session.add(Reaction(content_id=content_id, user_id=user_id, type=reaction.value))
        self.session.flush()
        return True

    # Reads

    def get_stats(self, content_id: str) -> ReactionStats:
        """Return counters for one item; unknown items have all-zero counters."""
        stats = ReactionStats()
        rows = self.session.execute(
            select(Reaction.type, func.count(Reaction.id))
            .where(Reaction.content_id == content_id)
            .group_by(Reaction.type)
        ).all()
        for type_value, count in rows:
            stats.counts[ReactionType(type_value)] = int(count)
        return stats

    def get_user_state(self, content_id: str, user_id: str | None) -> UserReactionState:
        """Return the viewer's own reactions on one item."""
        state = UserReactionState()
        if not user_id:
            return state
        held = self.session.scalars(
            select(Reaction.type)
            .where(Reaction.content_id == content_id, Reaction.user_id == user_id)
            .order_by(Reaction.type)
        ).all()
        for type_value in held:
            reaction = ReactionType(type_value)
            if reaction is ReactionType.LIKE:
                state.user_has_liked = True
            else:
                state.user_reaction_types.append(reaction)
        return state

    def read_snapshot(self, content_id: str, viewer_id: str | None = None) -> ReactionSnapshot:
        """Return stats plus the viewer's state for one item."""
        content_id = validate_raw_id(content_id)
        return ReactionSnapshot(
            content_id=content_id,
            stats=self.get_stats(content_id),
            user_state=self.get_user_state(content_id, (viewer_id or "").strip() or None),
        )

    def get_bulk_totals(self, content_ids: Iterable[str]) -> dict[str, int]:
        """Return LIKE-excluded totals for many items in one query.

        Unknown ids map to 0. Duplicate ids are collapsed.

        Raises:
            BatchTooLargeError: If more ids are requested than the batch limit.
            ValidationError: If any id is malformed.
        """
        requested = list(content_ids)
        if len(requested) > self.bulk_max_batch_size:
            raise BatchTooLargeError(
                f"At most {self.bulk_max_batch_size} content ids per request"
            )
        ids = list(dict.fromkeys(validate_raw_id(content_id) for content_id in requested))
        totals = dict.fromkeys(ids, 0)
        if not ids:
            return totals

        rows = self.session.execute(
            select(Reaction.content_id, func.count(Reaction.id))
            .where(
                Reaction.content_id.in_(ids),
                Reaction.type != ReactionType.LIKE.value,
            )
            .group_by(Reaction.content_id)
        ).all()
        for content_id, count in rows:
            totals[content_id] = int(count)
        return totals

    def get_profile_total(self, owner_profile_id: str) -> int:
        """Return LIKE-excluded reactions summed over every item of a profile."""
        total = self.session.scalar(
            select(func.count(Reaction.id))
            .join(Content, Content.id == Reaction.content_id)
            .where(
                Content.owner_profile_id == owner_profile_id,
                Reaction.type != ReactionType.LIKE.value,
            )
        )
        return int(total or 0)

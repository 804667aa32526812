"""Tiered access gating and unlock grants."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from mediagate.core.security import is_anonymous_id
from mediagate.models import Content, UnlockGrant, UnlockScopeKind, Visibility
from mediagate.services.errors import (
    NotFoundError,
    TransientStoreError,
    UnauthorizedError,
    ValidationError,
)
from mediagate.services.identity import validate_raw_id

logger = logging.getLogger(__name__)


class AccessLevel(str, enum.Enum):
    """Outcome of a gate evaluation."""

    FULL = "full"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class UnlockScope:
    """What a purchase unlocks: one item, or every item of one profile."""

    kind: UnlockScopeKind
    ref: str

    @classmethod
    def single_content(cls, content_id: str) -> UnlockScope:
        return cls(UnlockScopeKind.CONTENT, validate_raw_id(content_id))

    @classmethod
    def entire_gallery(cls, owner_profile_id: str) -> UnlockScope:
        owner_profile_id = (owner_profile_id or "").strip()
        if not owner_profile_id:
            raise ValidationError("ownerProfileId is required for a gallery unlock")
        return cls(UnlockScopeKind.GALLERY, owner_profile_id)


@dataclass(frozen=True)
class AccessDecision:
    """Gate result with what the caller may render.

    ``url`` is only set for full access. A degraded premium decision carries
    the price so the caller can render a purchase prompt.
    """

    access: AccessLevel
    content_id: str
    owner_profile_id: str
    visibility: str
    price: int | None = None
    url: str | None = None

    @property
    def unlockable(self) -> bool:
        return self.access is AccessLevel.DEGRADED and self.visibility == Visibility.PREMIUM.value


def is_owner(content: Content, viewer_id: str | None) -> bool:
    """Return True when ``viewer_id`` is the account that owns ``content``."""
    return bool(viewer_id) and content.owner_user_id is not None and (
        content.owner_user_id == viewer_id
    )


class AccessGate:
    """Evaluates visibility tiers against unlock grants."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def can_view(self, content: Content, viewer_id: str | None, is_owner: bool) -> AccessLevel:
        """Return whether ``viewer_id`` may see ``content`` un-degraded.

        Raises:
            ValueError: If the stored tier is not a known visibility.
        """
        if is_owner:
            return AccessLevel.FULL
        tier = Visibility(content.visibility)
        if tier is Visibility.PUBLIC:
            return AccessLevel.FULL
        if tier is Visibility.PRIVATE:
            # Grants never open private items.
            return AccessLevel.DEGRADED
        if viewer_id and self.has_grant(viewer_id, content):
            return AccessLevel.FULL
        return AccessLevel.DEGRADED

    def evaluate(
        self,
        content: Content,
        viewer_id: str | None,
        is_owner: bool,
    ) -> AccessDecision:
        """Run :meth:`can_view` and shape the result; failures close the gate."""
        try:
            access = self.can_view(content, viewer_id, is_owner)
        except (ValueError, SQLAlchemyError):
            logger.exception("Gate evaluation failed for %s, serving degraded", content.id)
            access = AccessLevel.DEGRADED

        if access is AccessLevel.FULL:
            return AccessDecision(
                access=access,
                content_id=content.id,
                owner_profile_id=content.owner_profile_id,
                visibility=content.visibility,
                price=content.price,
                url=content.source_url,
            )
        return AccessDecision(
            access=access,
            content_id=content.id,
            owner_profile_id=content.owner_profile_id,
            visibility=content.visibility,
            price=content.price if content.visibility == Visibility.PREMIUM.value else None,
        )

    def has_grant(self, user_id: str, content: Content) -> bool:
        """Return True if ``user_id`` unlocked this item or its whole gallery."""
        grant_id = self.session.scalar(
            select(UnlockGrant.id)
            .where(
                UnlockGrant.user_id == user_id,
                or_(
                    (UnlockGrant.scope_kind == UnlockScopeKind.CONTENT.value)
                    & (UnlockGrant.scope_ref == content.id),
                    (UnlockGrant.scope_kind == UnlockScopeKind.GALLERY.value)
                    & (UnlockGrant.scope_ref == content.owner_profile_id),
                ),
            )
            .limit(1)
        )
        return grant_id is not None

    def find_grant(self, user_id: str, scope: UnlockScope) -> UnlockGrant | None:
        return self.session.scalars(
            select(UnlockGrant).where(
                UnlockGrant.user_id == user_id,
                UnlockGrant.scope_kind == scope.kind.value,
                UnlockGrant.scope_ref == scope.ref,
            )
        ).first()

    def list_grants(self, user_id: str) -> list[UnlockGrant]:
        return list(
            self.session.scalars(
                select(UnlockGrant)
                .where(UnlockGrant.user_id == user_id)
                .order_by(UnlockGrant.granted_at, UnlockGrant.id)
            )
        )

    def grant_unlock(
        self,
        user_id: str | None,
        scope: UnlockScope,
        price: int,
    ) -> tuple[UnlockGrant, bool]:
        """Record a confirmed purchase, returning ``(grant, created)``.

        Re-granting a held scope returns the existing grant untouched, so a
        retried payment confirmation can never produce a second grant.

        Raises:
            UnauthorizedError: If the user is missing or only has an anonymous id.
            ValidationError: On a non-positive price, a price that does not
                match the item, an item that is not for sale, or a gallery
                price below its dearest premium item.
            NotFoundError: If the item or gallery does not exist.
        """
        user_id = (user_id or "").strip()
        if not user_id or is_anonymous_id(user_id):
            raise UnauthorizedError("Unlocks require an authenticated identity")
        if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
            raise ValidationError("Price must be a positive whole amount")

        existing = self.find_grant(user_id, scope)
        if existing is not None:
            logger.info("Unlock %s:%s already held by %s", scope.kind.value, scope.ref, user_id)
            return existing, False

        self._check_purchasable(scope, price)

        grant = UnlockGrant(
            user_id=user_id,
            scope_kind=scope.kind.value,
            scope_ref=scope.ref,
            price=price,
        )
        try:
            with self.session.begin_nested():
                self.session.add(grant)
                self.session.flush()
        except IntegrityError:
            existing = self.find_grant(user_id, scope)
            if existing is None:
                raise TransientStoreError("Unlock grant could not be recorded") from None
            logger.info(
                "Concurrent unlock of %s:%s for %s resolved to existing grant",
                scope.kind.value,
                scope.ref,
                user_id,
            )
            self.session.commit()
            return existing, False

        self.session.commit()
        logger.info("Granted unlock %s:%s to %s for %d", scope.kind.value, scope.ref, user_id, price)
        return grant, True

    def _check_purchasable(self, scope: UnlockScope, price: int) -> None:
        if scope.kind is UnlockScopeKind.CONTENT:
            content = self.session.get(Content, scope.ref)
            if content is None:
                raise NotFoundError(f"Content {scope.ref} not found")
            if content.visibility != Visibility.PREMIUM.value:
                raise ValidationError(f"Content {scope.ref} is not for sale")
            if content.price is not None and content.price != price:
                raise ValidationError(f"Price mismatch: content costs {content.price}")
            return

        gallery_item = self.session.scalar(
            select(Content.id).where(Content.owner_profile_id == scope.ref).limit(1)
        )
        if gallery_item is None:
            raise NotFoundError(f"Gallery {scope.ref} not found")
        # A gallery is sold only if it gates something, and never for less than
        # its dearest single item.
        dearest = self.session.scalar(
            select(func.max(Content.price)).where(
                Content.owner_profile_id == scope.ref,
                Content.visibility == Visibility.PREMIUM.value,
            )
        )
        if dearest is None:
            raise ValidationError(f"Gallery {scope.ref} has no premium content for sale")
        if price < dearest:
            raise ValidationError(f"Gallery unlock costs at least {dearest}")

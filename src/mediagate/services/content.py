"""Registration and lookup of media items."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mediagate.core.settings import settings
from mediagate.models import Content, Visibility
from mediagate.services.errors import ConflictError, NotFoundError, ValidationError
from mediagate.services.identity import normalize_url, resolve_content_id, validate_raw_id

logger = logging.getLogger(__name__)


def parse_visibility(value: str | Visibility) -> Visibility:
    """Return the visibility tier named by ``value`` (case-insensitive)."""
    if isinstance(value, Visibility):
        return value
    try:
        return Visibility(str(value).strip().upper())
    except ValueError as err:
        raise ValidationError(f"Unknown visibility: {value!r}") from err


def _check_price(visibility: Visibility, price: int | None) -> None:
    if price is not None and price <= 0:
        raise ValidationError("Price must be a positive amount")
    if visibility is Visibility.PREMIUM and price is None:
        raise ValidationError("Premium content requires a price")


class ContentRegistry:
    """Creates and finds :class:`Content` rows.

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, session: Session, *, auto_register: bool | None = None) -> None:
        self.session = session
        self.auto_register = (
            settings.auto_register_content if auto_register is None else auto_register
        )

    def get(self, content_id: str) -> Content:
        """Return the content row or raise :class:`NotFoundError`."""
        content = self.session.get(Content, validate_raw_id(content_id))
        if content is None:
            raise NotFoundError(f"Content {content_id} not found")
        return content

    def find_by_source(self, owner_profile_id: str, url: str) -> Content | None:
        """Return the row registered for this owner and asset URL, if any."""
        return self.session.scalars(
            select(Content).where(
                Content.owner_profile_id == owner_profile_id,
                Content.normalized_url == normalize_url(url),
            )
        ).first()

    def register(
        self,
        *,
        owner_profile_id: str,
        url: str,
        visibility: str | Visibility = Visibility.PUBLIC,
        price: int | None = None,
        raw_id: str | None = None,
        owner_user_id: str | None = None,
    ) -> tuple[Content, bool]:
        """Register a media item, returning ``(content, created)``.

        Registering the same asset twice returns the existing row unchanged,
        whatever id it was first registered under.

        Raises:
            ValidationError: On missing owner/url, bad tier or price.
            ConflictError: If an explicit id is supplied for an asset that is
                already registered under a different id.
        """
        tier = parse_visibility(visibility)
        _check_price(tier, price)
        content_id = resolve_content_id(raw_id, owner_profile_id, url)
        owner_profile_id = (owner_profile_id or "").strip()
        if not owner_profile_id or not url:
            raise ValidationError("ownerProfileId and url are required to register content")

        explicit = bool(raw_id and raw_id.strip())
        existing = self._find_existing(content_id, owner_profile_id, url, explicit=explicit)
        if existing is not None:
            return existing, False

        content = Content(
            id=content_id,
            owner_profile_id=owner_profile_id,
            owner_user_id=owner_user_id,
            source_url=url.strip(),
            normalized_url=normalize_url(url),
            visibility=tier.value,
            price=price,
        )
        try:
            with self.session.begin_nested():
                self.session.add(content)
                self.session.flush()
        except IntegrityError:
            # Another request registered the same asset first.
            existing = self._find_existing(content_id, owner_profile_id, url, explicit=explicit)
            if existing is None:
                raise
            return existing, False

        logger.info("Registered content %s for profile %s", content_id, owner_profile_id)
        return content, True

    def ensure(
        self,
        raw_id: str | None,
        owner_profile_id: str | None,
        url: str | None,
    ) -> Content:
        """Return the referenced content, auto-registering it when allowed.

        Auto-registration only happens when it is enabled and the caller gave
        both the owner profile and the URL; a bare unknown id is always
        rejected, since there is nothing to register it from. An owner and URL
        reference finds the asset even when it was registered under an
        explicit id.
        """
        content_id = resolve_content_id(raw_id, owner_profile_id, url)
        if not (raw_id and raw_id.strip()):
            by_source = self.find_by_source(owner_profile_id.strip(), url)
            if by_source is not None:
                return by_source
        content = self.session.get(Content, content_id)
        if content is not None:
            return content
        if not self.auto_register or not owner_profile_id or not url:
            raise NotFoundError(f"Content {content_id} not found")
        content, _ = self.register(owner_profile_id=owner_profile_id, url=url, raw_id=raw_id)
        return content

    def update_visibility(
        self,
        content_id: str,
        visibility: str | Visibility,
        price: int | None = None,
    ) -> Content:
        """Move a content item to another tier."""
        content = self.get(content_id)
        tier = parse_visibility(visibility)
        _check_price(tier, price)
        content.visibility = tier.value
        content.price = price
        self.session.flush()
        return content

    def _find_existing(
        self,
        content_id: str,
        owner_profile_id: str,
        url: str,
        *,
        explicit: bool,
    ) -> Content | None:
        by_source = self.find_by_source(owner_profile_id, url)
        # Only an explicit id can disagree with the row already holding the asset.
        if by_source is not None and explicit and by_source.id != content_id:
            raise ConflictError(
                f"Asset is already registered as content {by_source.id}"
            )
        if by_source is not None:
            return by_source
        by_id = self.session.get(Content, content_id)
        if by_id is not None and by_id.owner_profile_id != owner_profile_id:
            raise ConflictError(f"Content id {content_id} belongs to another profile")
        return by_id

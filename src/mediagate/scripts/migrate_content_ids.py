"""Repair content ids: merge duplicate rows and re-key derived ids.

Two states need repair, both allowed by the schema:

* The same asset registered twice by one profile. This happens when rows were
  written under older URL normalisation rules (a cache token kept in the
  stored key, say). The rows are merged into one, preferring a row with an
  explicit id over one with a derived id, then the oldest.
* An asset registered under its derived id before the caller learned its
  canonical explicit id. Registering the explicit id afterwards is rejected
  as a conflict; ``--rekey DERIVED=EXPLICIT`` moves the row to the new id.

Reactions and single-item unlock grants follow their content. A row that would
duplicate an existing ``(content, user, type)`` reaction or ``(user, scope)``
grant is dropped instead of moved. All changes run in one transaction.

Usage:
    python -m mediagate.scripts.migrate_content_ids [--dry-run] [--rekey OLD=NEW ...]
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from mediagate.core.logging import configure_logging
from mediagate.db.session import SessionLocal
from mediagate.models import Content, Reaction, UnlockGrant, UnlockScopeKind
from mediagate.services.errors import ConflictError, MediaGateError, NotFoundError
from mediagate.services.identity import derive_content_id, normalize_url, validate_raw_id

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    merged: int = 0
    rekeyed: int = 0
    reactions_moved: int = 0
    reactions_dropped: int = 0
    grants_moved: int = 0
    grants_dropped: int = 0


def _is_derived(content: Content) -> bool:
    return content.id == derive_content_id(content.owner_profile_id, content.source_url)


def find_duplicate_assets(session: Session) -> list[tuple[Content, list[Content]]]:
    """Return ``(canonical, duplicates)`` for every asset stored more than once."""
    groups: dict[tuple[str, str], list[Content]] = {}
    for content in session.scalars(select(Content).order_by(Content.created_at, Content.id)):
        key = (content.owner_profile_id, normalize_url(content.source_url))
        groups.setdefault(key, []).append(content)

    plans = []
    for rows in groups.values():
        if len(rows) < 2:
            continue
        canonical = next((row for row in rows if not _is_derived(row)), rows[0])
        plans.append((canonical, [row for row in rows if row is not canonical]))
    return plans


def _move_dependents(
    session: Session,
    source_id: str,
    target_id: str,
    report: MigrationReport,
) -> None:
    reactions = session.scalars(
        select(Reaction).where(Reaction.content_id == source_id).order_by(Reaction.id)
    ).all()
    for reaction in reactions:
        duplicate = session.scalar(
            select(Reaction.id).where(
                Reaction.content_id == target_id,
                Reaction.user_id == reaction.user_id,
                Reaction.type == reaction.type,
            )
        )
        if duplicate is not None:
            session.delete(reaction)
            report.reactions_dropped += 1
        else:
            reaction.content_id = target_id
            report.reactions_moved += 1
        session.flush()

    grants = session.scalars(
        select(UnlockGrant).where(
            UnlockGrant.scope_kind == UnlockScopeKind.CONTENT.value,
            UnlockGrant.scope_ref == source_id,
        )
    ).all()
    for grant in grants:
        duplicate = session.scalar(
            select(UnlockGrant.id).where(
                UnlockGrant.user_id == grant.user_id,
                UnlockGrant.scope_kind == UnlockScopeKind.CONTENT.value,
                UnlockGrant.scope_ref == target_id,
            )
        )
        if duplicate is not None:
            session.delete(grant)
            report.grants_dropped += 1
        else:
            grant.scope_ref = target_id
            report.grants_moved += 1
        session.flush()


def merge_duplicates(
    session: Session,
    canonical: Content,
    duplicates: Sequence[Content],
    report: MigrationReport,
) -> None:
    """Fold ``duplicates`` into ``canonical`` and refresh its stored URL key."""
    for duplicate in duplicates:
        _move_dependents(session, duplicate.id, canonical.id, report)
        session.delete(duplicate)
        session.flush()
        report.merged += 1
        logger.info("Merged content %s into %s", duplicate.id, canonical.id)
    canonical.normalized_url = normalize_url(canonical.source_url)
    session.flush()


def rekey_content(session: Session, old_id: str, new_id: str, report: MigrationReport) -> None:
    """Move content ``old_id`` and everything keyed by it to ``new_id``.

    Raises:
        NotFoundError: If ``old_id`` is not registered.
        ConflictError: If ``new_id`` belongs to another profile.
    """
    new_id = validate_raw_id(new_id)
    source = session.get(Content, validate_raw_id(old_id))
    if source is None:
        raise NotFoundError(f"Content {old_id} not found")
    if source.id == new_id:
        return

    target = session.get(Content, new_id)
    if target is not None and target.owner_profile_id != source.owner_profile_id:
        raise ConflictError(f"Content id {new_id} belongs to another profile")

    if target is None:
        normalized = source.normalized_url
        # Normalised keys never carry a fragment, so this cannot clash with a live row.
        source.normalized_url = f"{normalized}#{source.id}"
        session.flush()
        target = Content(
            id=new_id,
            owner_profile_id=source.owner_profile_id,
            owner_user_id=source.owner_user_id,
            source_url=source.source_url,
            normalized_url=normalized,
            visibility=source.visibility,
            price=source.price,
            created_at=source.created_at,
        )
        session.add(target)
        session.flush()

    _move_dependents(session, source.id, target.id, report)
    session.delete(source)
    session.flush()
    report.rekeyed += 1
    logger.info("Re-keyed content %s to %s", old_id, new_id)


def migrate_content_ids(
    session: Session,
    rekeys: Sequence[tuple[str, str]] = (),
    *,
    dry_run: bool = False,
) -> MigrationReport:
    """Merge duplicate assets, apply ``rekeys`` and return counts.

    Commits unless ``dry_run``; on any error nothing is written.
    """
    report = MigrationReport()
    savepoint = session.begin_nested()
    try:
        for canonical, duplicates in find_duplicate_assets(session):
            merge_duplicates(session, canonical, duplicates, report)
        for old_id, new_id in rekeys:
            rekey_content(session, old_id, new_id, report)
    except MediaGateError:
        savepoint.rollback()
        raise

    if dry_run:
        savepoint.rollback()
    else:
        savepoint.commit()
        session.commit()
    return report


def parse_rekey(value: str) -> tuple[str, str]:
    """Parse an ``OLD=NEW`` command line pair."""
    old_id, sep, new_id = value.partition("=")
    if not sep or not old_id.strip() or not new_id.strip():
        raise argparse.ArgumentTypeError(f"expected OLD=NEW, got {value!r}")
    return old_id.strip(), new_id.strip()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--dry-run", action="store_true", help="report without writing")
    parser.add_argument(
        "--rekey",
        action="append",
        default=[],
        type=parse_rekey,
        metavar="OLD=NEW",
        help="move content OLD to id NEW (repeatable)",
    )
    args = parser.parse_args(argv)

    configure_logging()
    with SessionLocal() as session:
        try:
            report = migrate_content_ids(session, args.rekey, dry_run=args.dry_run)
        except MediaGateError as err:
            logger.error("Migration aborted: %s", err)
            return 1

    logger.info(
        "%s: %d merged, %d re-keyed, reactions %d moved / %d dropped, "
        "grants %d moved / %d dropped",
        "Dry run" if args.dry_run else "Migration complete",
        report.merged,
        report.rekeyed,
        report.reactions_moved,
        report.reactions_dropped,
        report.grants_moved,
        report.grants_dropped,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Like Toggle Service
===================

This module handles like operations with:
1. One transaction per toggle (ledger row + counter change together)
2. Race resolution through the unique constraint
3. Bounded retry on transaction conflicts

STATE MACHINE (per entity + session):
-------------------------------------
    Unliked --toggle--> Liked      insert like, like_count + 1
    Liked   --toggle--> Unliked    delete like, like_count - 1 (floored at 0)

CONCURRENCY STRATEGY:
---------------------
Problem: a guest double-clicks the heart. Two requests for the same
(photo, session) both see "no like" and both try to insert.

Solution: Unique Constraint + IntegrityError (optimistic)
    - Both INSERTs reach the unique index
    - The second one blocks until the first commits, then fails
    - The ledger turns that into DuplicateKey
    - We re-check and report "liked" instead of a second like

The mirror case (both requests see a like and both delete it) ends with
the second DELETE matching zero rows → LikeNotFound → report "unliked".

Different guests liking the same photo never conflict: the only
shared write is the counter, and that is an atomic UPDATE (counters.py).
On SQLite, which has a single writer, their transactions queue up on the
IMMEDIATE write lock instead (see DATABASES in settings).

TRANSACTION STRATEGY:
--------------------
Ledger change and counter change are in the same transaction.
If either fails, both are rolled back → consistent state.
The settled count is read after commit and returned to the client,
which patches it into every cached list that shows the entity.
"""

import logging
import time
from dataclasses import dataclass
from typing import Literal

from django.conf import settings
from django.db import transaction, OperationalError

from .counters import adjust_like_count, read_like_count
from .exceptions import EntityNotFound, DuplicateKey, LikeNotFound, TransactionConflict
from .ledger import LikeLedger
from .models import Photo, PlaylistSong, PhotoLike, SongLike, PhotoComment, SiteMetadata

logger = logging.getLogger(__name__)

EntityKind = Literal['photo', 'song']

# SQLSTATE codes PostgreSQL uses for aborted concurrent transactions
SERIALIZATION_FAILURE = '40001'
DEADLOCK_DETECTED = '40P01'
CONFLICT_SQLSTATES = {SERIALIZATION_FAILURE, DEADLOCK_DETECTED}


@dataclass(frozen=True)
class LikeTarget:
    """A likeable entity model together with its ledger."""
    kind: str
    entity_model: type
    ledger: LikeLedger


LIKE_TARGETS = {
    'photo': LikeTarget('photo', Photo, LikeLedger(PhotoLike, 'photo')),
    'song': LikeTarget('song', PlaylistSong, LikeLedger(SongLike, 'song')),
}


def get_like_target(kind: str) -> LikeTarget:
    try:
        return LIKE_TARGETS[kind]
    except KeyError:
        raise ValueError(f"Invalid like target: {kind}")


@dataclass(frozen=True)
class ToggleResult:
    """Settled like state of one (entity, session) pair after a toggle."""
    liked: bool
    likes: int

    def as_dict(self) -> dict:
        return {'liked': self.liked, 'likes': self.likes}


def is_transaction_conflict(exc: OperationalError) -> bool:
    """
    True when the database aborted the transaction because of a concurrent one.

    Django wraps driver errors; the driver exception (psycopg2 / psycopg)
    is kept as __cause__ and carries the SQLSTATE. SQLite has no SQLSTATE
    and reports writer contention as "database is locked".
    """
    cause = exc.__cause__
    sqlstate = getattr(cause, 'pgcode', None) or getattr(cause, 'sqlstate', None)
    if sqlstate in CONFLICT_SQLSTATES:
        return True
    return 'database is locked' in str(exc)


def _apply_toggle(target: LikeTarget, entity_id: int, session_key: str) -> ToggleResult:
    """
    One toggle attempt in one transaction.

    Raises EntityNotFound, DuplicateKey, LikeNotFound or TransactionConflict;
    on any of them nothing has been written.
    """
    try:
        with transaction.atomic():
            if not target.entity_model.objects.filter(id=entity_id).exists():
                raise EntityNotFound(target.kind, entity_id)

            if target.ledger.exists(entity_id, session_key):
                target.ledger.remove(entity_id, session_key)
                adjust_like_count(target.entity_model, entity_id, -1)
                liked = False
            else:
                target.ledger.insert(entity_id, session_key)
                adjust_like_count(target.entity_model, entity_id, +1)
                liked = True
    except OperationalError as exc:
        if is_transaction_conflict(exc):
            raise TransactionConflict(str(exc)) from exc
        raise

    # Settled value: read after commit
    return ToggleResult(liked, read_like_count(target.entity_model, entity_id))


def toggle_like(kind: EntityKind, entity_id: int, session_key: str) -> ToggleResult:
    """
    Flip the like state of (entity, session) and return the settled state.

    Toggling an even number of times returns to the starting state and
    count; an odd number leaves the session liking the entity with the
    count one higher.

    RACES:
    - DuplicateKey: another request of this session inserted first.
      If the like is there on re-check, report liked.
    - LikeNotFound: another request of this session deleted first.
      If the like is gone on re-check, report unliked.
    - TransactionConflict: retried up to LIKE_TOGGLE_MAX_ATTEMPTS in total,
      sleeping LIKE_TOGGLE_RETRY_BACKOFF * attempt seconds in between.
    """
    target = get_like_target(kind)
    max_attempts = max(1, settings.LIKE_TOGGLE_MAX_ATTEMPTS)

    for attempt in range(1, max_attempts + 1):
        try:
            result = _apply_toggle(target, entity_id, session_key)
            logger.debug(
                f"Toggled {kind} {entity_id}: liked={result.liked} likes={result.likes}"
            )
            return result

        except DuplicateKey:
            if target.ledger.exists(entity_id, session_key):
                logger.info(f"Concurrent like on {kind} {entity_id} resolved as liked")
                return ToggleResult(True, read_like_count(target.entity_model, entity_id))

        except LikeNotFound:
            if not target.ledger.exists(entity_id, session_key):
                logger.info(f"Concurrent unlike on {kind} {entity_id} resolved as unliked")
                return ToggleResult(False, read_like_count(target.entity_model, entity_id))

        except TransactionConflict:
            if attempt == max_attempts:
                raise
            logger.warning(
                f"Transaction conflict toggling {kind} {entity_id} "
                f"(attempt {attempt}/{max_attempts}), retrying"
            )
            # Linear backoff: the competing transaction needs time to commit
            time.sleep(settings.LIKE_TOGGLE_RETRY_BACKOFF * attempt)

    raise TransactionConflict(
        f"Could not settle like on {kind} {entity_id} after {max_attempts} attempts"
    )


def toggle_photo_like(photo_id: int, session_key: str) -> ToggleResult:
    return toggle_like('photo', photo_id, session_key)


def toggle_song_like(song_id: int, session_key: str) -> ToggleResult:
    return toggle_like('song', song_id, session_key)


# ============================================================================
# ENTITY LIFECYCLE
# ============================================================================
# Deleting a likeable entity removes its ledger rows first, in the same
# transaction, so no like ever points at a missing entity.

def delete_photo(photo_id: int) -> int:
    """
    Delete a photo with its likes and comments.

    Returns the number of likes removed.
    """
    target = LIKE_TARGETS['photo']
    with transaction.atomic():
        if not Photo.objects.filter(id=photo_id).exists():
            raise EntityNotFound('photo', photo_id)
        removed_likes = target.ledger.delete_all_for_entity(photo_id)
        PhotoComment.objects.filter(photo_id=photo_id).delete()
        Photo.objects.filter(id=photo_id).delete()

    logger.info(f"Deleted photo {photo_id} ({removed_likes} likes)")
    return removed_likes


def delete_song(song_id: int) -> int:
    """Delete a playlist song with its likes. Returns the number of likes removed."""
    target = LIKE_TARGETS['song']
    with transaction.atomic():
        if not PlaylistSong.objects.filter(id=song_id).exists():
            raise EntityNotFound('song', song_id)
        removed_likes = target.ledger.delete_all_for_entity(song_id)
        PlaylistSong.objects.filter(id=song_id).delete()

    logger.info(f"Deleted song {song_id} ({removed_likes} likes)")
    return removed_likes


def approve_photo(photo_id: int) -> None:
    updated = Photo.objects.filter(id=photo_id).update(approved=True)
    if not updated:
        raise EntityNotFound('photo', photo_id)


# ============================================================================
# SITE METADATA
# ============================================================================

def set_site_metadata(data: dict) -> SiteMetadata:
    """
    Create or replace the entry for data['meta_key'].

    update_or_create locks an existing row and retries the lookup if a
    concurrent request inserts the same key first.
    """
    fields = dict(data)
    meta_key = fields.pop('meta_key')
    metadata, created = SiteMetadata.objects.update_or_create(meta_key=meta_key, defaults=fields)

    logger.info(f"{'Created' if created else 'Updated'} site metadata {meta_key!r}")
    return metadata

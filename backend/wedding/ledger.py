"""
Like Ledger
===========

The set of (entity, session_key) pairs that currently hold a like.
One LikeLedger wraps one concrete LikeRecord model (PhotoLike, SongLike).

The ledger is the source of truth for "has this session liked it";
like_count on the entity is only a cache of count_for_entity().
"""

from django.db import transaction, IntegrityError

from .exceptions import DuplicateKey, LikeNotFound


class LikeLedger:
    """
    Existence-set access for one like table.

    entity_field is the name of the foreign key on record_model
    ('photo' for PhotoLike, 'song' for SongLike).
    """

    def __init__(self, record_model, entity_field: str):
        self.record_model = record_model
        self.entity_field = entity_field

    def _entity_filter(self, entity_id: int) -> dict:
        return {f'{self.entity_field}_id': entity_id}

    def _pair(self, entity_id: int, session_key: str):
        return self.record_model.objects.filter(
            session_key=session_key,
            **self._entity_filter(entity_id)
        )

    def exists(self, entity_id: int, session_key: str) -> bool:
        return self._pair(entity_id, session_key).exists()

    def insert(self, entity_id: int, session_key: str):
        """
        Record a like.

        The INSERT runs in a savepoint so a unique-constraint violation
        leaves the caller's transaction usable (required on PostgreSQL).
        """
        try:
            with transaction.atomic():
                return self.record_model.objects.create(
                    session_key=session_key,
                    **self._entity_filter(entity_id)
                )
        except IntegrityError as exc:
            raise DuplicateKey(entity_id, session_key) from exc

    def remove(self, entity_id: int, session_key: str) -> None:
        deleted_count, _ = self._pair(entity_id, session_key).delete()
        if deleted_count == 0:
            raise LikeNotFound(entity_id, session_key)

    def delete_all_for_entity(self, entity_id: int) -> int:
        """Remove every like of an entity. Must run before the entity row is deleted."""
        deleted_count, _ = self.record_model.objects.filter(
            **self._entity_filter(entity_id)
        ).delete()
        return deleted_count

    def count_for_entity(self, entity_id: int) -> int:
        return self.record_model.objects.filter(**self._entity_filter(entity_id)).count()

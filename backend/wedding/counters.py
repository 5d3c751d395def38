"""
Like Counters
=============

like_count is adjusted with a relative UPDATE:

    UPDATE wedding_photo SET like_count = like_count + 1 WHERE id = %s
    UPDATE wedding_photo SET like_count = GREATEST(like_count - 1, 0) WHERE id = %s

The database applies the increment atomically, so two guests liking the
same photo at the same moment never lose an update, and neither has to
wait on an application-level lock. Read-modify-write in Python
(photo.like_count += 1; photo.save()) would lose one of the two.
"""

from django.db.models import F, IntegerField, Value
from django.db.models.functions import Greatest

from .exceptions import EntityNotFound


def adjust_like_count(entity_model, entity_id: int, delta: int) -> None:
    """
    Apply +1 or -1 to an entity's like_count, never going below zero.

    Raises EntityNotFound if no row has this id.
    """
    if delta == 1:
        new_value = F('like_count') + 1
    elif delta == -1:
        # Floor at 0 even if the ledger and the counter ever disagree
        new_value = Greatest(F('like_count') - 1, Value(0), output_field=IntegerField())
    else:
        raise ValueError(f"delta must be +1 or -1, got {delta}")

    updated = entity_model.objects.filter(id=entity_id).update(like_count=new_value)
    if not updated:
        raise EntityNotFound(entity_model._meta.model_name, entity_id)


def read_like_count(entity_model, entity_id: int) -> int:
    """Current like_count, or 0 if the entity no longer exists."""
    like_count = (
        entity_model.objects
        .filter(id=entity_id)
        .values_list('like_count', flat=True)
        .first()
    )
    return like_count or 0

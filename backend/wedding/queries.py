"""
Read Paths
==========

Query functions for the gallery, comments, playlist, wedding details and
site metadata.

THE N+1 PROBLEM:
----------------
The gallery shows a comment count under every photo. Counting per photo
means 1 query for the photos + 1 per photo. Instead we annotate:

    SELECT photo.*, COUNT(comment.id) AS comment_count
    FROM wedding_photo photo
    LEFT JOIN wedding_photocomment comment ON comment.photo_id = photo.id
    GROUP BY photo.id
    ORDER BY photo.uploaded_at DESC

One query regardless of the number of photos.
"""

from datetime import datetime
from typing import Optional

from django.conf import settings
from django.db.models import Count, QuerySet
from django.utils.dateparse import parse_datetime

from .models import Photo, PhotoComment, PlaylistSong, SiteMetadata, WeddingDetails

DEFAULT_PAGE_SIZE = 12
WEDDING_DETAILS_ID = 1
MAX_PAGE_SIZE = 100


def clamp_limit(limit: Optional[int]) -> Optional[int]:
    """Keep a requested page size within 1..MAX_PAGE_SIZE. None means no limit."""
    if limit is None:
        return None
    return min(MAX_PAGE_SIZE, max(1, limit))


def get_photos(
    approved: Optional[bool] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> QuerySet:
    """
    Photos newest first, each annotated with comment_count.

    approved=None returns every photo (the admin's "all" view);
    True / False return the approved-only / pending-only views.
    """
    queryset = (
        Photo.objects
        .annotate(comment_count=Count('comments'))
        .order_by('-uploaded_at', '-id')
    )
    if approved is not None:
        queryset = queryset.filter(approved=approved)

    offset = max(0, offset)
    limit = clamp_limit(limit)
    if limit is not None:
        return queryset[offset:offset + limit]
    if offset:
        return queryset[offset:]
    return queryset


def get_photo_comments(photo_id: int) -> QuerySet:
    return PhotoComment.objects.filter(photo_id=photo_id).order_by('created_at', 'id')


def get_playlist_songs() -> QuerySet:
    """Approved songs, newest suggestion first."""
    return PlaylistSong.objects.filter(approved=True).order_by('-submitted_at', '-id')


def _default_wedding_date() -> datetime:
    return parse_datetime(settings.WEDDING_DEFAULTS['wedding_date'])


def get_wedding_details() -> WeddingDetails:
    """
    The wedding details row, created from settings.WEDDING_DEFAULTS on first access.

    The first row always gets the fixed id WEDDING_DETAILS_ID: two concurrent
    first reads both go through get_or_create on that primary key, and the
    loser of the insert picks up the winner's row.
    """
    details = WeddingDetails.objects.order_by('id').first()
    if details is None:
        defaults = settings.WEDDING_DEFAULTS
        details, _ = WeddingDetails.objects.get_or_create(
            pk=WEDDING_DETAILS_ID,
            defaults={
                'couple_names': defaults['couple_names'],
                'wedding_date': _default_wedding_date(),
                'venue': defaults['venue'],
                'venue_address': defaults.get('venue_address') or None,
            },
        )
    return details


def get_site_metadata(key: Optional[str] = None) -> QuerySet:
    """All metadata entries, or only the one with this key."""
    queryset = SiteMetadata.objects.order_by('category', 'meta_key')
    if key:
        queryset = queryset.filter(meta_key=key)
    return queryset

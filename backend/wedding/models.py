"""
Data Models for the Wedding Site
================================

Design Philosophy:
------------------
1. Guests never log in. A "session" is a fingerprint derived from the
   request (see session.py), stored as an opaque string on each like.

2. Likes use one concrete table per likeable entity (PhotoLike, SongLike)
   - Alternative: a single polymorphic table via ContentType
   - Chose separate tables so each ledger row has a real foreign key and
     the unique constraint covers (entity, session_key) directly

3. like_count on Photo / PlaylistSong is a denormalized cache of the
   number of ledger rows. Only services.toggle_like may change it.

4. Ledger foreign keys use PROTECT, not CASCADE
   - Deleting an entity must remove its likes first (services.delete_*)
   - A stray entity.delete() fails loudly instead of leaving the counter
     and the ledger out of step

Indexes Strategy:
-----------------
- photo.uploaded_at: gallery ordering (newest first)
- photo.approved + photo.uploaded_at: approved-only / pending-only views
- like (entity, session_key): uniqueness + "has this guest liked it"
- site metadata meta_key: unique lookup key
"""

from django.db import models
from django.utils import timezone


class LikeableEntity(models.Model):
    """
    Anything guests can like.

    like_count is never written through model.save() by application code;
    counters.adjust_like_count issues a relative UPDATE instead.
    """
    like_count = models.PositiveIntegerField(default=0)

    class Meta:
        abstract = True


class Photo(LikeableEntity):
    """A guest (or photo booth) picture registered by URL."""
    filename = models.CharField(max_length=255)
    original_name = models.CharField(max_length=255)
    url = models.TextField()
    thumbnail_url = models.TextField()
    approved = models.BooleanField(default=False)
    author_name = models.CharField(max_length=255, blank=True, null=True)
    is_photo_booth = models.BooleanField(default=False)
    uploaded_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ['-uploaded_at']
        indexes = [
            # Approved-only and pending-only gallery views
            models.Index(fields=['approved', '-uploaded_at']),
        ]

    def __str__(self):
        return f"Photo {self.id}: {self.original_name}"


class PlaylistSong(LikeableEntity):
    """A song suggested by a guest for the party playlist."""
    title = models.CharField(max_length=255)
    artist = models.CharField(max_length=255, blank=True, null=True)
    suggestion = models.TextField()
    approved = models.BooleanField(default=True)
    submitted_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ['-submitted_at']

    def __str__(self):
        if self.artist:
            return f"{self.title} - {self.artist}"
        return self.title


class PhotoComment(models.Model):
    """Guest comment under a photo. Oldest first."""
    photo = models.ForeignKey(
        Photo,
        on_delete=models.CASCADE,
        related_name='comments',
        db_index=True
    )
    author = models.CharField(max_length=255)
    text = models.TextField()
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['photo', 'created_at']),
        ]

    def __str__(self):
        return f"Comment by {self.author} on photo {self.photo_id}"


class LikeRecord(models.Model):
    """
    One row = "this guest session currently likes this entity".

    Existence is the whole state: rows are inserted and deleted, never
    updated. created_at is informational only.
    """
    session_key = models.CharField(max_length=255)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        abstract = True


class PhotoLike(LikeRecord):
    photo = models.ForeignKey(
        Photo,
        on_delete=models.PROTECT,
        related_name='likes'
    )

    class Meta:
        # CRITICAL: backstop for two concurrent toggles from one session.
        # The loser gets an IntegrityError instead of a second like.
        constraints = [
            models.UniqueConstraint(
                fields=['photo', 'session_key'],
                name='unique_photo_like_per_session'
            )
        ]

    def __str__(self):
        return f"{self.session_key[:8]} likes photo {self.photo_id}"


class SongLike(LikeRecord):
    song = models.ForeignKey(
        PlaylistSong,
        on_delete=models.PROTECT,
        related_name='likes'
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['song', 'session_key'],
                name='unique_song_like_per_session'
            )
        ]

    def __str__(self):
        return f"{self.session_key[:8]} likes song {self.song_id}"


class WeddingDetails(models.Model):
    """
    Singleton row with the event information shown on the landing page.

    allow_uploads / moderate_uploads gate photo registration:
    - allow_uploads=False rejects new photos
    - moderate_uploads=True registers new photos as pending (approved=False)
    """
    couple_names = models.CharField(max_length=255)
    wedding_date = models.DateTimeField()
    venue = models.CharField(max_length=255)
    venue_address = models.TextField(blank=True, null=True)
    allow_uploads = models.BooleanField(default=True)
    moderate_uploads = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'wedding details'

    def __str__(self):
        return f"{self.couple_names} @ {self.venue}"


class SiteMetadata(models.Model):
    """
    Editable key/value content for the site (hero text, RSVP link, ...).

    meta_value is stored as text; meta_type tells the client how to read it.
    """
    TYPE_CHOICES = [
        ('string', 'String'),
        ('number', 'Number'),
        ('boolean', 'Boolean'),
        ('json', 'JSON'),
    ]

    meta_key = models.CharField(max_length=255, unique=True)
    meta_value = models.TextField(blank=True, null=True)
    meta_type = models.CharField(max_length=50, choices=TYPE_CHOICES, default='string')
    description = models.TextField(blank=True, null=True)
    category = models.CharField(max_length=100, default='general', db_index=True)
    is_editable = models.BooleanField(default=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['category', 'meta_key']
        verbose_name_plural = 'site metadata'

    def __str__(self):
        return self.meta_key

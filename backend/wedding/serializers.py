"""
DRF Serializers
===============

Serializers handle:
1. Validation and cleanup of guest input
2. Transformation of model instances to JSON

DESIGN DECISIONS:
-----------------
1. like_count is always exposed as "likes" and always read-only.
   The toggle response uses the same name, so the client can patch the
   settled value straight into any cached photo or song.
2. Separate serializers for reading and creating
3. Free text from guests is trimmed, stripped of control characters and
   cut to the column length
"""

import re

from rest_framework import serializers

from .models import Photo, PhotoComment, PlaylistSong, SiteMetadata, WeddingDetails

CONTROL_CHARACTERS = re.compile(r'[\x00-\x1f\x7f]')


def sanitize_text(value: str, max_length: int = 255) -> str:
    """Trim, drop control characters and cap the length of guest-supplied text."""
    if not value:
        return ''
    return CONTROL_CHARACTERS.sub('', value.strip())[:max_length]


class PhotoSerializer(serializers.ModelSerializer):
    """
    Serializer for the gallery.

    comment_count comes from the queries.get_photos() annotation.
    """
    likes = serializers.IntegerField(source='like_count', read_only=True)
    comment_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Photo
        fields = [
            'id',
            'filename',
            'original_name',
            'url',
            'thumbnail_url',
            'likes',
            'approved',
            'author_name',
            'is_photo_booth',
            'uploaded_at',
            'comment_count',
        ]
        read_only_fields = fields


class PhotoCreateSerializer(serializers.ModelSerializer):
    """
    Register a photo that already lives in object storage.

    approved is optional; the view fills in the moderation default.
    """

    class Meta:
        model = Photo
        fields = [
            'filename',
            'original_name',
            'url',
            'thumbnail_url',
            'approved',
            'author_name',
            'is_photo_booth',
        ]
        extra_kwargs = {
            'approved': {'required': False},
            'is_photo_booth': {'required': False},
        }

    def validate_filename(self, value):
        return sanitize_text(value)

    def validate_original_name(self, value):
        return sanitize_text(value)

    def validate_author_name(self, value):
        if value is None:
            return None
        return sanitize_text(value) or None


class PhotoCommentSerializer(serializers.ModelSerializer):

    class Meta:
        model = PhotoComment
        fields = ['id', 'photo', 'author', 'text', 'created_at']
        read_only_fields = fields


class PhotoCommentCreateSerializer(serializers.ModelSerializer):
    """
    Validates that author and text are present after cleanup.

    Photo comes from the URL, not from the body.
    """
    author = serializers.CharField(max_length=255, trim_whitespace=True)
    text = serializers.CharField(trim_whitespace=True)

    class Meta:
        model = PhotoComment
        fields = ['author', 'text']

    def validate_author(self, value):
        value = sanitize_text(value)
        if not value:
            raise serializers.ValidationError("Author is required.")
        return value

    def validate_text(self, value):
        value = sanitize_text(value, max_length=2000)
        if not value:
            raise serializers.ValidationError("Comment cannot be empty.")
        return value


class PlaylistSongSerializer(serializers.ModelSerializer):
    likes = serializers.IntegerField(source='like_count', read_only=True)

    class Meta:
        model = PlaylistSong
        fields = ['id', 'title', 'artist', 'suggestion', 'likes', 'approved', 'submitted_at']
        read_only_fields = fields


class PlaylistSongCreateSerializer(serializers.ModelSerializer):

    class Meta:
        model = PlaylistSong
        fields = ['title', 'artist', 'suggestion', 'approved']
        extra_kwargs = {
            'approved': {'required': False},
        }

    def validate_title(self, value):
        value = sanitize_text(value)
        if not value:
            raise serializers.ValidationError("Title is required.")
        return value

    def validate_artist(self, value):
        if value is None:
            return None
        return sanitize_text(value) or None

    def validate_suggestion(self, value):
        value = sanitize_text(value, max_length=2000)
        if not value:
            raise serializers.ValidationError("Suggestion is required.")
        return value


class WeddingDetailsSerializer(serializers.ModelSerializer):

    class Meta:
        model = WeddingDetails
        fields = [
            'id',
            'couple_names',
            'wedding_date',
            'venue',
            'venue_address',
            'allow_uploads',
            'moderate_uploads',
            'updated_at',
        ]
        read_only_fields = ['id', 'updated_at']


class LikeStateSerializer(serializers.Serializer):
    """Toggle response: direction plus the settled count."""
    liked = serializers.BooleanField()
    likes = serializers.IntegerField(min_value=0)


class SiteMetadataSerializer(serializers.ModelSerializer):
    """
    Serializer for site metadata entries.

    POST /api/metadata is an upsert by meta_key, so the unique validator
    on meta_key is switched off; the database constraint still applies.
    """

    class Meta:
        model = SiteMetadata
        fields = [
            'id',
            'meta_key',
            'meta_value',
            'meta_type',
            'description',
            'category',
            'is_editable',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {
            'meta_key': {'validators': []},
        }

    def validate_meta_key(self, value):
        value = sanitize_text(value)
        if not value:
            raise serializers.ValidationError("Key is required.")
        return value

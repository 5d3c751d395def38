"""
Django Admin Configuration for Wedding Models

like_count is read-only everywhere, and photo / song deletion goes
through the services so the like ledger is emptied first.
"""
from django.contrib import admin
from django.db import transaction
from .models import (
    Photo, PhotoComment, PhotoLike, PlaylistSong, SiteMetadata, SongLike, WeddingDetails,
)
from .services import delete_photo, delete_song


@admin.register(Photo)
class PhotoAdmin(admin.ModelAdmin):
    list_display = ['id', 'original_name', 'author_name', 'approved', 'like_count', 'uploaded_at']
    list_filter = ['approved', 'is_photo_booth', 'uploaded_at']
    search_fields = ['original_name', 'author_name']
    readonly_fields = ['like_count', 'uploaded_at']
    actions = ['approve_selected']

    @admin.action(description='Approve selected photos')
    def approve_selected(self, request, queryset):
        queryset.update(approved=True)

    def delete_model(self, request, obj):
        delete_photo(obj.id)

    def delete_queryset(self, request, queryset):
        # All or nothing for the whole selection
        with transaction.atomic():
            for photo_id in list(queryset.values_list('id', flat=True)):
                delete_photo(photo_id)


@admin.register(PlaylistSong)
class PlaylistSongAdmin(admin.ModelAdmin):
    list_display = ['title', 'artist', 'approved', 'like_count', 'submitted_at']
    list_filter = ['approved', 'submitted_at']
    search_fields = ['title', 'artist', 'suggestion']
    readonly_fields = ['like_count', 'submitted_at']

    def delete_model(self, request, obj):
        delete_song(obj.id)

    def delete_queryset(self, request, queryset):
        with transaction.atomic():
            for song_id in list(queryset.values_list('id', flat=True)):
                delete_song(song_id)


@admin.register(PhotoComment)
class PhotoCommentAdmin(admin.ModelAdmin):
    list_display = ['id', 'photo', 'author', 'created_at']
    list_filter = ['created_at']
    search_fields = ['author', 'text']


class LikeRecordAdmin(admin.ModelAdmin):
    """Likes are only created and removed by the toggle."""
    list_display = ['session_key', 'created_at']
    readonly_fields = ['session_key', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        # Removing a like here would leave like_count too high
        return False


@admin.register(PhotoLike)
class PhotoLikeAdmin(LikeRecordAdmin):
    list_display = ['photo', 'session_key', 'created_at']


@admin.register(SongLike)
class SongLikeAdmin(LikeRecordAdmin):
    list_display = ['song', 'session_key', 'created_at']


@admin.register(WeddingDetails)
class WeddingDetailsAdmin(admin.ModelAdmin):
    list_display = ['couple_names', 'wedding_date', 'venue', 'allow_uploads', 'moderate_uploads']

    def has_add_permission(self, request):
        # Single row, created on first read
        return not WeddingDetails.objects.exists()


@admin.register(SiteMetadata)
class SiteMetadataAdmin(admin.ModelAdmin):
    list_display = ['meta_key', 'category', 'meta_type', 'is_editable', 'updated_at']
    list_filter = ['category', 'meta_type', 'is_editable']
    search_fields = ['meta_key', 'meta_value', 'description']
    readonly_fields = ['created_at', 'updated_at']

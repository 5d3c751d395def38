"""
Wedding App URL Configuration

Paths carry no trailing slash; they match the existing frontend client.
"""
from django.urls import path
from .views import (
    WeddingDetailsView,
    PhotoListView,
    PhotoSaveView,
    PhotoDetailView,
    PhotoApproveView,
    PhotoLikeView,
    PhotoCommentListView,
    PlaylistView,
    SongDetailView,
    SongLikeView,
    SiteMetadataListView,
    SiteMetadataDetailView,
)

urlpatterns = [
    # Wedding details
    path('wedding-details', WeddingDetailsView.as_view(), name='wedding-details'),

    # Photos
    path('photos', PhotoListView.as_view(), name='photo-list'),
    path('photos/save', PhotoSaveView.as_view(), name='photo-save'),
    path('photos/<int:photo_id>', PhotoDetailView.as_view(), name='photo-detail'),
    path('photos/<int:photo_id>/approve', PhotoApproveView.as_view(), name='photo-approve'),
    path('photos/<int:entity_id>/like', PhotoLikeView.as_view(), name='photo-like'),
    path('photos/<int:photo_id>/comments', PhotoCommentListView.as_view(), name='photo-comments'),

    # Playlist
    path('playlist', PlaylistView.as_view(), name='playlist'),
    path('playlist/<int:song_id>', SongDetailView.as_view(), name='song-detail'),
    path('playlist/<int:entity_id>/like', SongLikeView.as_view(), name='song-like'),

    # Site metadata
    path('metadata', SiteMetadataListView.as_view(), name='metadata-list'),
    path('metadata/<str:key>', SiteMetadataDetailView.as_view(), name='metadata-detail'),
]

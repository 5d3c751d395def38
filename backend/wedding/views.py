"""
DRF Views
=========

API endpoints for the wedding site.

AUTHENTICATION NOTE:
--------------------
There is none. Guests are anonymous; likes are attributed to the session
fingerprint from session.get_session_key(). Admin-only actions (approve,
delete) are open; put the API behind the proxy's admin auth in production.

ERRORS:
-------
Domain errors (EntityNotFound, TransactionConflict) are raised from the
services and turned into responses by exceptions.custom_exception_handler.
"""

import logging

from rest_framework import generics, status, permissions
from rest_framework.views import APIView
from rest_framework.response import Response
from django.shortcuts import get_object_or_404

from .models import Photo, SiteMetadata
from .serializers import (
    PhotoSerializer,
    PhotoCreateSerializer,
    PhotoCommentSerializer,
    PhotoCommentCreateSerializer,
    PlaylistSongSerializer,
    PlaylistSongCreateSerializer,
    WeddingDetailsSerializer,
    LikeStateSerializer,
    SiteMetadataSerializer,
)
from .queries import (
    get_photos,
    get_photo_comments,
    get_playlist_songs,
    get_site_metadata,
    get_wedding_details,
)
from .services import toggle_like, delete_photo, delete_song, approve_photo, set_site_metadata
from .session import get_session_key

logger = logging.getLogger(__name__)


def parse_bool(value):
    """'true' / 'false' query values; anything else means "not filtered"."""
    if value == 'true':
        return True
    if value == 'false':
        return False
    return None


def parse_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class WeddingDetailsView(APIView):
    """
    GET   /api/wedding-details
    PATCH /api/wedding-details

    The details row is created from settings on first read.
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        details = get_wedding_details()
        return Response(WeddingDetailsSerializer(details).data)

    def patch(self, request):
        details = get_wedding_details()
        serializer = WeddingDetailsSerializer(details, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class PhotoListView(APIView):
    """
    GET /api/photos?approved=true|false&limit=&offset=

    Newest first, with comment counts. Query: 1
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        photos = get_photos(
            approved=parse_bool(request.query_params.get('approved')),
            limit=parse_int(request.query_params.get('limit')),
            offset=parse_int(request.query_params.get('offset'), default=0),
        )
        return Response(PhotoSerializer(photos, many=True).data)


class PhotoSaveView(APIView):
    """
    POST /api/photos/save

    Register a photo already uploaded to object storage.

    - 403 when uploads are switched off in the wedding details
    - approved defaults to "not moderated"
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        details = get_wedding_details()
        if not details.allow_uploads:
            return Response(
                {'error': 'Photo uploads are closed'},
                status=status.HTTP_403_FORBIDDEN
            )

        serializer = PhotoCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        approved = serializer.validated_data.get('approved', not details.moderate_uploads)
        photo = serializer.save(approved=approved)

        logger.info(f"Registered photo {photo.id} (approved={photo.approved})")
        return Response(PhotoSerializer(photo).data, status=status.HTTP_201_CREATED)


class PhotoDetailView(APIView):
    """
    DELETE /api/photos/<id>

    Likes are removed before the photo (services.delete_photo).
    """
    permission_classes = [permissions.AllowAny]

    def delete(self, request, photo_id):
        delete_photo(photo_id)
        return Response({'message': 'Photo deleted successfully'})


class PhotoApproveView(APIView):
    """PATCH /api/photos/<id>/approve"""
    permission_classes = [permissions.AllowAny]

    def patch(self, request, photo_id):
        approve_photo(photo_id)
        return Response({'message': 'Photo approved successfully'})


class LikeToggleView(APIView):
    """
    POST /api/photos/<id>/like
    POST /api/playlist/<id>/like

    Toggle the requesting guest's like. No body.

    Returns:
    {
        "liked": true | false,
        "likes": <settled count>
    }

    CONCURRENCY:
    - One transaction per toggle, retried on conflicts
    - Unique constraint prevents duplicate likes
    - 404 if the entity does not exist
    """
    permission_classes = [permissions.AllowAny]
    kind = None

    def post(self, request, entity_id):
        session_key = get_session_key(request)
        result = toggle_like(self.kind, entity_id, session_key)
        return Response(LikeStateSerializer(result.as_dict()).data)


class PhotoLikeView(LikeToggleView):
    kind = 'photo'


class SongLikeView(LikeToggleView):
    kind = 'song'


class PhotoCommentListView(generics.ListCreateAPIView):
    """
    GET  /api/photos/<id>/comments
    POST /api/photos/<id>/comments

    Body:
    {
        "author": "Guest name",
        "text": "Comment text"
    }
    """
    permission_classes = [permissions.AllowAny]
    pagination_class = None

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return PhotoCommentCreateSerializer
        return PhotoCommentSerializer

    def get_queryset(self):
        return get_photo_comments(self.kwargs['photo_id'])

    def create(self, request, *args, **kwargs):
        photo = get_object_or_404(Photo, id=self.kwargs['photo_id'])
        serializer = PhotoCommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = serializer.save(photo=photo)
        return Response(
            PhotoCommentSerializer(comment).data,
            status=status.HTTP_201_CREATED
        )


class PlaylistView(APIView):
    """
    GET  /api/playlist
    POST /api/playlist
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response(PlaylistSongSerializer(get_playlist_songs(), many=True).data)

    def post(self, request):
        serializer = PlaylistSongCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        song = serializer.save()
        return Response(PlaylistSongSerializer(song).data, status=status.HTTP_201_CREATED)


class SongDetailView(APIView):
    """DELETE /api/playlist/<id>"""
    permission_classes = [permissions.AllowAny]

    def delete(self, request, song_id):
        delete_song(song_id)
        return Response({'message': 'Song deleted successfully'})


class SiteMetadataListView(APIView):
    """
    GET  /api/metadata?key=
    POST /api/metadata

    POST creates the entry or replaces the one with the same meta_key.
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        entries = get_site_metadata(request.query_params.get('key'))
        return Response(SiteMetadataSerializer(entries, many=True).data)

    def post(self, request):
        serializer = SiteMetadataSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        metadata = set_site_metadata(serializer.validated_data)
        return Response(SiteMetadataSerializer(metadata).data)


class SiteMetadataDetailView(APIView):
    """
    GET    /api/metadata/<key>
    PATCH  /api/metadata/<key>
    DELETE /api/metadata/<key>
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request, key):
        metadata = get_object_or_404(SiteMetadata, meta_key=key)
        return Response(SiteMetadataSerializer(metadata).data)

    def patch(self, request, key):
        metadata = get_object_or_404(SiteMetadata, meta_key=key)
        serializer = SiteMetadataSerializer(metadata, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    def delete(self, request, key):
        metadata = get_object_or_404(SiteMetadata, meta_key=key)
        metadata.delete()
        return Response({'message': 'Metadata deleted successfully'})

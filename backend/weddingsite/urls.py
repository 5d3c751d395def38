"""
Wedding Site URL Configuration
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def api_root(request):
    """Root endpoint with API information."""
    return JsonResponse({
        'message': 'Wedding Site API Server',
        'version': '1.0',
        'endpoints': {
            'wedding_details': '/api/wedding-details',
            'photos': '/api/photos',
            'photo_like': '/api/photos/<id>/like',
            'photo_comments': '/api/photos/<id>/comments',
            'playlist': '/api/playlist',
            'song_like': '/api/playlist/<id>/like',
        },
        'admin': '/admin/',
    })


urlpatterns = [
    path('', api_root, name='api-root'),
    path('admin/', admin.site.urls),
    path('api/', include('wedding.urls')),
]

"""
WSGI config for weddingsite project.
"""
import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'weddingsite.settings')
application = get_wsgi_application()

"""
Wedding App Configuration
"""
from django.apps import AppConfig


class WeddingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'wedding'
    verbose_name = 'Wedding'

# backend/settings/__init__.py
"""
PATH: backend/settings/__init__.py

Settings package entrypoint. Nothing is imported here; pick a module with
DJANGO_SETTINGS_MODULE:
- backend.settings.dev   (local development)
- backend.settings.test  (manage.py test / pytest)
- backend.settings.prod  (production)
"""

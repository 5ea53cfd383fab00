"""
WSGI entry point.

Usage:
    flask --app wsgi run
    flask --app wsgi migrate-flat-storage
    gunicorn wsgi:app
"""

from pmassist import create_app

app = create_app()

"""
ASGI config for learningbackend project.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'learningbackend.settings')

application = get_asgi_application()

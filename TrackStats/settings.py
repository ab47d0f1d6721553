"""
Django settings for TrackStats

Email open/click tracking service. Everything deployment-specific is read
from the environment (or a local .env file).
"""
import sys
from pathlib import Path

from environs import Env

env = Env()
env.read_env()

BASE_DIR = Path(__file__).resolve().parent.parent

TESTING = sys.argv[1:2] == ['test'] or 'pytest' in sys.modules

# ==============================================================================
# SECURITY
# ==============================================================================

SECRET_KEY = env('DJANGO_SECRET_KEY', default='django-insecure-trackstats-dev-key')
DEBUG = env.bool('DJANGO_DEBUG', default=False)

ALLOWED_HOSTS = env.list('DJANGO_ALLOWED_HOSTS', default=['localhost', '127.0.0.1', 'testserver'])
CSRF_TRUSTED_ORIGINS = env.list('DJANGO_CSRF_TRUSTED_ORIGINS', default=[])

# Tracking pixels/clicks usually arrive through a proxy (Vercel, nginx)
USE_X_FORWARDED_HOST = env.bool('DJANGO_USE_X_FORWARDED_HOST', default=True)

# ==============================================================================
# APPLICATIONS
# ==============================================================================

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'drf_spectacular',
    'tracking_service',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'TrackStats.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'TrackStats.wsgi.application'

# ==============================================================================
# DATABASE
# ==============================================================================

DATABASES = {
    'default': env.dj_db_url('DATABASE_URL', default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}")
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# ==============================================================================
# INTERNATIONALIZATION
# ==============================================================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

# ==============================================================================
# REST FRAMEWORK
# ==============================================================================

REST_FRAMEWORK = {
    # Tracking endpoints are public; dashboard endpoints are origin-restricted
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'UNAUTHENTICATED_USER': None,
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'TrackStats API',
    'DESCRIPTION': 'Signed email open/click tracking and campaign statistics',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    # /pixel and /click are plain Django views, so they are described by hand
    'APPEND_PATHS': {
        '/pixel': {
            'get': {
                'operationId': 'track_pixel',
                'tags': ['Tracking'],
                'summary': 'Track Email Open',
                'description': 'Records an open for a signed pixel URL and returns a 1x1 transparent image.',
                'parameters': [
                    {'name': 'm', 'in': 'query', 'required': True, 'schema': {'type': 'string'},
                     'description': 'Message ID'},
                    {'name': 'sig', 'in': 'query', 'required': True, 'schema': {'type': 'string'},
                     'description': 'HMAC-SHA256 of m=<id>, hex'},
                ],
                'responses': {
                    '200': {
                        'description': 'Tracking pixel',
                        'content': {
                            'image/gif': {'schema': {'type': 'string', 'format': 'binary'}},
                            'image/png': {'schema': {'type': 'string', 'format': 'binary'}},
                        },
                    },
                    '400': {'description': 'Missing parameters or invalid signature (empty body)'},
                },
            },
        },
        '/click': {
            'get': {
                'operationId': 'track_click',
                'tags': ['Tracking'],
                'summary': 'Track Email Click',
                'description': 'Records a click for a signed link and redirects to its destination.',
                'parameters': [
                    {'name': 'm', 'in': 'query', 'required': True, 'schema': {'type': 'string'},
                     'description': 'Message ID'},
                    {'name': 'l', 'in': 'query', 'required': True, 'schema': {'type': 'integer', 'minimum': 0},
                     'description': 'Link index'},
                    {'name': 'sig', 'in': 'query', 'required': True, 'schema': {'type': 'string'},
                     'description': 'HMAC-SHA256 of m=<id>|l=<index>, hex'},
                ],
                'responses': {
                    '302': {'description': 'Redirect to the destination URL'},
                    '400': {'description': 'Invalid tracking link'},
                    '404': {'description': 'Message not found'},
                    '500': {'description': 'Server error'},
                },
            },
        },
    },
}

# ==============================================================================
# CELERY
# ==============================================================================

CELERY_BROKER_URL = env('CELERY_BROKER_URL', default='redis://localhost:6379/0')
CELERY_TASK_SERIALIZER = 'json'
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TIMEZONE = 'UTC'
CELERY_TASK_ALWAYS_EAGER = env.bool('CELERY_TASK_ALWAYS_EAGER', default=TESTING)
CELERY_TASK_IGNORE_RESULT = True
# Publishing must never hold up a pixel response
CELERY_BROKER_CONNECTION_TIMEOUT = env.float('CELERY_BROKER_CONNECTION_TIMEOUT', default=1.0)
CELERY_TASK_PUBLISH_RETRY = False

# ==============================================================================
# TRACKING
# ==============================================================================

# Public base URL the tracking links point at (no trailing slash needed)
TRACKING_BASE_URL = env('APP_BASE', default='http://localhost:8000')

# HMAC key for tracking links. Rotating it invalidates every link already sent.
TRACK_SECRET = env('TRACK_SECRET', default='change_this_secret')

# Where a click lands when its link index is unknown for the message
TRACKING_DEFAULT_REDIRECT_URL = env('TRACKING_DEFAULT_REDIRECT_URL', default=TRACKING_BASE_URL)

# 'gif' or 'png'
TRACKING_PIXEL_FORMAT = env('TRACKING_PIXEL_FORMAT', default='gif')

# Origins allowed to call the dashboard API (empty = unrestricted)
TRACKING_ALLOWED_ORIGINS = env.list('TRACKING_ALLOWED_ORIGINS', default=[])

# Seconds the click redirect may wait on the message lookup
TRACKING_LOOKUP_TIMEOUT = env.float('TRACKING_LOOKUP_TIMEOUT', default=3.0)

TRACKING_EVENT_STORE = env(
    'TRACKING_EVENT_STORE',
    default='tracking_service.store.DjangoEventStore'
)

# Only used by SupabaseEventStore
SUPABASE_URL = env('SUPABASE_URL', default='')
SUPABASE_ANON_KEY = env('SUPABASE_ANON_KEY', default='')

# ==============================================================================
# LOGGING
# ==============================================================================

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {name} {module} {funcName} {lineno} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {asctime} {module} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'level': 'DEBUG' if DEBUG else 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'verbose' if DEBUG else 'simple',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': env('DJANGO_LOG_LEVEL', default='INFO'),
            'propagate': False,
        },
        'tracking_service': {
            'handlers': ['console'],
            'level': 'DEBUG' if DEBUG else 'INFO',
            'propagate': False,
        },
        'celery': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}

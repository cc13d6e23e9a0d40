"""
Django settings for the RankRent back office.

Every deployment-specific value comes from the environment so the same
settings module works locally, on a server and on AWS Lambda.
"""
import os
from pathlib import Path

from .database import get_database_config
from .storage import get_storage_settings, USE_S3

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-rankrent-dev-key')
DEBUG = os.getenv('DJANGO_DEBUG', 'true').lower() == 'true'
ALLOWED_HOSTS = [h for h in os.getenv('DJANGO_ALLOWED_HOSTS', '*').split(',') if h]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'apps.core',
    'apps.identity',
    'apps.organizations',
    'apps.activity',
    'apps.websites',
    'apps.leads',
    'apps.clients',
    'apps.taskboard',
    'apps.seo',
    'apps.telephony',
    'apps.videos',
    'apps.dashboard',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'apps.identity.middleware.JWTAuthenticationMiddleware',
    'apps.organizations.middleware.TenantMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

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

ASGI_APPLICATION = 'config.asgi.application'

# =============================================================================
# Database
# =============================================================================

DATABASES = {
    'default': get_database_config(BASE_DIR),
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# =============================================================================
# Authentication
# =============================================================================

AUTH_USER_MODEL = 'identity.User'

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.BCryptSHA256PasswordHasher',
    'django.contrib.auth.hashers.BCryptPasswordHasher',
    'django.contrib.auth.hashers.PBKDF2PasswordHasher',
]

BCRYPT_ROUNDS = int(os.getenv('BCRYPT_ROUNDS', '12'))

# =============================================================================
# Internationalization
# =============================================================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# =============================================================================
# Storage (S3 or local)
# =============================================================================

USE_S3_STORAGE = USE_S3
globals().update(get_storage_settings(BASE_DIR))

AWS_REGION = os.getenv('AWS_REGION', 'us-east-1')
AWS_S3_BUCKET = os.getenv('AWS_S3_BUCKET', 'rankandrent-videos')

# =============================================================================
# Integrations
# =============================================================================

SERVER_URL = os.getenv('SERVER_URL', 'http://localhost:8000')
FRONTEND_URL = os.getenv('FRONTEND_URL', 'https://rankandrenttool.com')

TWILIO_ACCOUNT_SID = os.getenv('TWILIO_ACCOUNT_SID', '')
TWILIO_AUTH_TOKEN = os.getenv('TWILIO_AUTH_TOKEN', '')
TWILIO_API_KEY = os.getenv('TWILIO_API_KEY', '')
TWILIO_API_SECRET = os.getenv('TWILIO_API_SECRET', '')
TWILIO_APP_SID = os.getenv('TWILIO_APP_SID') or os.getenv('TWILIO_TWIML_APP_SID', '')
TWILIO_PHONE_NUMBER = os.getenv('TWILIO_PHONE_NUMBER', '')

OPENCAGE_API_KEY = os.getenv('OPENCAGE_API_KEY', '')
SEO_RATE_LIMIT_DELAY = float(os.getenv('SEO_RATE_LIMIT_DELAY', '1.0'))
SEO_API_TIMEOUT = int(os.getenv('SEO_API_TIMEOUT', '30000')) / 1000

RAPIDAPI_KEY = os.getenv('RAPIDAPI_KEY', '')
RAPIDAPI_HOST = os.getenv('RAPIDAPI_HOST', 'seo-api-dataforseo.p.rapidapi.com')
RAPIDAPI_BACKLINKS_HOST = os.getenv('RAPIDAPI_BACKLINKS_HOST', 'seo-api-get-backlinks.p.rapidapi.com')
RAPIDAPI_RANK_CHECKER_HOST = os.getenv(
    'RAPIDAPI_RANK_CHECKER_HOST', 'google-rank-checker-by-keyword.p.rapidapi.com'
)

# =============================================================================
# Background tasks (Celery)
# =============================================================================

CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', CELERY_BROKER_URL)
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TIMEZONE = TIME_ZONE

# =============================================================================
# Logging
# =============================================================================

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'django.request': {
            'handlers': ['console'],
            'level': 'ERROR',
            'propagate': False,
        },
    },
}

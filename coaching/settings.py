"""
Django settings for the coaching project.

Values are read from the environment; a local .env file is loaded first
to simplify development setups.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def _env_bool(name, default=False):
    return os.getenv(name, str(default)).lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'dev-secret-change-me')

DEBUG = _env_bool('DJANGO_DEBUG', True)

ALLOWED_HOSTS = [
    host.strip()
    for host in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')
    if host.strip()
]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'scheduling',
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

ROOT_URLCONF = 'coaching.urls'

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

WSGI_APPLICATION = 'coaching.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': os.getenv('DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.getenv('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.getenv('DB_USER', ''),
        'PASSWORD': os.getenv('DB_PASSWORD', ''),
        'HOST': os.getenv('DB_HOST', ''),
        'PORT': os.getenv('DB_PORT', ''),
    }
}

# The sweep run lock lives in the default cache, so every process that runs a
# sweep must share it. Run ``manage.py createcachetable`` for the database cache.
CACHES = {
    'default': {
        'BACKEND': os.getenv(
            'CACHE_BACKEND', 'django.core.cache.backends.db.DatabaseCache'
        ),
        'LOCATION': os.getenv('CACHE_LOCATION', 'scheduling_cache'),
    }
}

LANGUAGE_CODE = 'en-us'

# Slot and session times are wall-clock times in this zone.
TIME_ZONE = os.getenv('TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.SessionAuthentication',
        'rest_framework.authentication.BasicAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'EXCEPTION_HANDLER': 'scheduling.exceptions.api_exception_handler',
}

# Scheduling engine
SCHEDULING_NOTIFICATION_SINK = os.getenv(
    'SCHEDULING_NOTIFICATION_SINK',
    'scheduling.notifications.DatabaseNotificationSink',
)
SCHEDULING_SWEEP_SOFT_TIMEOUT = int(os.getenv('SCHEDULING_SWEEP_SOFT_TIMEOUT', '240'))
SCHEDULING_SWEEP_LOCK_TTL = int(os.getenv('SCHEDULING_SWEEP_LOCK_TTL', '600'))
SCHEDULING_MAX_AVAILABILITY_DAYS = int(os.getenv('SCHEDULING_MAX_AVAILABILITY_DAYS', '62'))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
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
        'level': os.getenv('DJANGO_LOG_LEVEL', 'WARNING'),
    },
    'loggers': {
        'scheduling': {
            'handlers': ['console'],
            'level': os.getenv('SCHEDULING_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}

"""
Django settings for formparity project.
Server runtime for the dynamic forms validation engine.
"""

from pathlib import Path
from decouple import config, Config, RepositoryEnv

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Project root (one level up from backend)
PROJECT_ROOT = BASE_DIR.parent

# Configure decouple to look for .env in project root
env_path = PROJECT_ROOT / '.env'
if env_path.exists():
    config = Config(RepositoryEnv(str(env_path)))

# Security settings
SECRET_KEY = config('SECRET_KEY', default='django-insecure-development-key-change-in-production')
DEBUG = config('DEBUG', default=True, cast=bool)

ALLOWED_HOSTS = [
    'localhost',
    '127.0.0.1',
    'testserver',
]

# Add environment-configured hosts
env_hosts = config('ALLOWED_HOSTS', default='').split(',')
if env_hosts and env_hosts != ['']:
    ALLOWED_HOSTS.extend([host.strip() for host in env_hosts if host.strip()])

# The engine keeps no state in the database; sqlite only backs contenttypes/auth
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': config('DB_NAME', default=str(BASE_DIR / 'db.sqlite3')),
    }
}

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.staticfiles',
    'rest_framework',  # DRF for API endpoints
    'drf_spectacular',  # OpenAPI documentation
    'dynamic_forms',  # Form validation engine
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'formparity.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
            ],
        },
    },
]

# WSGI/ASGI application
WSGI_APPLICATION = 'formparity.wsgi.application'
ASGI_APPLICATION = 'formparity.asgi.application'

# REST Framework Configuration
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'UNAUTHENTICATED_USER': None,
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'FormParity API',
    'DESCRIPTION': 'Server-side validation, dependency and visibility evaluation for declarative forms',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
}

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Dynamic Forms Configuration
DYNAMIC_FORMS = {
    'ASYNC_TIMEOUT': config('FORMS_ASYNC_TIMEOUT', default=10.0, cast=float),
    'CONFIG_DIR': config('FORMS_CONFIG_DIR', default=str(BASE_DIR / 'forms_config')),
}

FORMS_LOG_LEVEL = config('FORMS_LOG_LEVEL', default='INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
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
        'level': 'INFO',
    },
    'loggers': {
        'django.request': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
        'dynamic_forms': {
            'level': FORMS_LOG_LEVEL,
            'propagate': True,
        },
    },
}

from decimal import Decimal
from pathlib import Path
from decouple import config, Csv


# BASE DIRECTORY
# Build paths inside the project like this: BASE_DIR / 'subdir'
# BASE_DIR points to the project root (where manage.py is)
BASE_DIR = Path(__file__).resolve().parent.parent


# SECURITY SETTINGS

# SECURITY WARNING: keep the secret key used in production secret!
# Generate new key: python -c 'from django.core.management.utils import get_random_secret_key; print(get_random_secret_key())'
SECRET_KEY = config('SECRET_KEY', default='django-insecure-CHANGE-THIS-IN-PRODUCTION')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = config('DEBUG', default=True, cast=bool)

# Format: 'domain.com,www.domain.com,api.domain.com'
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1,0.0.0.0', cast=Csv())

# Public base URL (used to build webhook URLs shown in the admin)
SITE_URL = config('SITE_URL', default='http://localhost:8000')


# INSTALLED APPS

INSTALLED_APPS = [
    # Django Channels (must be before django.contrib.staticfiles)
    'daphne',  # ASGI server for WebSocket support

    # Django built-in apps
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third-party apps
    'corsheaders',  # CORS headers support (SPA front-end)
    'channels',  # WebSocket support (live chat)

    # Our custom apps
    # IMPORTANT: accounts must be first (custom user model)
    'apps.accounts',  # Users, roles, referral & team
    'apps.core',  # Company (tenant), lead sources, events, notifications
    'apps.leads',  # CRM pipeline
    'apps.billing',  # Credits, checkout, payment webhook, commissions
    'apps.invoices',  # Invoice clients & contact unlock
    'apps.proposals',  # Proposal generation
    'apps.wallet',  # Withdrawals
    'apps.whatsapp',  # WhatsApp chat
]


# MIDDLEWARE

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',  # must be before CommonMiddleware
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]


ROOT_URLCONF = 'config.urls'


# TEMPLATES
# Only the admin renders HTML; every other endpoint answers JSON
TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]


# ASGI/WSGI APPLICATION

# ASGI application (HTTP + WebSocket), served by Daphne
ASGI_APPLICATION = 'config.asgi.application'

# WSGI application (for traditional HTTP)
WSGI_APPLICATION = 'config.wsgi.application'


# DATABASE

# PostgreSQL in production
DATABASES = {
    'default': {
        'ENGINE': config('DB_ENGINE', default='django.db.backends.postgresql'),
        'NAME': config('DB_NAME', default='energycrm_db'),
        'USER': config('DB_USER', default='energycrm_user'),
        'PASSWORD': config('DB_PASSWORD', default='energycrm_pass'),
        'HOST': config('DB_HOST', default='db'),  # 'db' is Docker service name
        'PORT': config('DB_PORT', default='5432'),
        'CONN_MAX_AGE': 600,  # Keep connection open for 10 minutes
        'OPTIONS': {
            'connect_timeout': 10,
        }
    }
}


# AUTHENTICATION

# Custom user model (email login, roles, balances)
AUTH_USER_MODEL = 'accounts.User'

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
        'OPTIONS': {
            'min_length': 6,
        }
    },
]

LOGIN_URL = '/accounts/login/'


# INTERNATIONALIZATION

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'America/Sao_Paulo'

USE_I18N = True

# All datetimes in database are stored in UTC
USE_TZ = True


# STATIC & MEDIA FILES

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

MEDIA_URL = '/media/'
MEDIA_ROOT = BASE_DIR / 'media'


# CORS HEADERS (Cross-Origin Resource Sharing)

# In development: allow all
# In production: specify exact domains
if DEBUG:
    CORS_ALLOW_ALL_ORIGINS = True
else:
    CORS_ALLOWED_ORIGINS = config('CORS_ALLOWED_ORIGINS', default='', cast=Csv())
CORS_ALLOW_CREDENTIALS = True


# CHANNELS (WebSocket)

# Uses Redis for message passing between servers
CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels_redis.core.RedisChannelLayer',
        'CONFIG': {
            'hosts': [config('REDIS_URL', default='redis://redis:6379/1')],
        },
    },
}


# CELERY (Background Tasks)

CELERY_BROKER_URL = config('REDIS_URL', default='redis://redis:6379/0')
CELERY_RESULT_BACKEND = config('REDIS_URL', default='redis://redis:6379/0')

CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'

CELERY_TIMEZONE = TIME_ZONE

# Hard limit 5 minutes, soft limit 4 minutes (1 min for cleanup)
CELERY_TASK_TIME_LIMIT = 5 * 60
CELERY_TASK_SOFT_TIME_LIMIT = 4 * 60


# LOGGING

LOGS_DIR = BASE_DIR / 'logs'
LOGS_DIR.mkdir(exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,

    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },

    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'file': {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': LOGS_DIR / 'django.log',
            'maxBytes': 1024 * 1024 * 10,  # 10 MB
            'backupCount': 5,
            'formatter': 'verbose',
        },
    },

    'loggers': {
        'django': {
            'handlers': ['console', 'file'],
            'level': config('LOG_LEVEL', default='INFO'),
            'propagate': True,
        },
        'apps': {  # Our custom apps
            'handlers': ['console', 'file'],
            'level': 'DEBUG',
            'propagate': False,
        },
    },
}


# PAYMENT GATEWAY (Asaas)

ASAAS_API_KEY = config('ASAAS_API_KEY', default='')
# 'sandbox' or 'production'
ASAAS_ENV = config('ASAAS_ENV', default='sandbox')
ASAAS_API_URL = (
    'https://api.asaas.com/v3'
    if ASAAS_ENV == 'production'
    else 'https://sandbox.asaas.com/api/v3'
)
# Shared secret sent by Asaas in the 'asaas-access-token' header
ASAAS_WEBHOOK_SECRET = config('ASAAS_WEBHOOK_SECRET', default='')
# Document used when the customer has no CPF/CNPJ on file
ASAAS_FALLBACK_DOCUMENT = config('ASAAS_FALLBACK_DOCUMENT', default='24971563792')


# TELEGRAM (admin notifications)

TELEGRAM_BOT_TOKEN = config('TELEGRAM_BOT_TOKEN', default='')
TELEGRAM_CHAT_ID = config('TELEGRAM_CHAT_ID', default='')


# WHATSAPP CLOUD API

WHATSAPP_API_VERSION = config('WHATSAPP_API_VERSION', default='v20.0')
WHATSAPP_BULK_CHUNK_SIZE = config('WHATSAPP_BULK_CHUNK_SIZE', default=50, cast=int)


# BUSINESS RULES

# Share of a referred user's payment paid to the referrer (10%)
REFERRAL_COMMISSION_RATE = config('REFERRAL_COMMISSION_RATE', default='0.10', cast=Decimal)

# Credits granted by an SDR plan payment, and the marker in its description
SDR_PLAN_CREDITS = config('SDR_PLAN_CREDITS', default=300, cast=int)
SDR_PLAN_MARKER = config('SDR_PLAN_MARKER', default='Plano SDR')

# Withdrawals
MIN_WITHDRAWAL_AMOUNT = config('MIN_WITHDRAWAL_AMOUNT', default='50.00', cast=Decimal)
WITHDRAWAL_AUTO_COMPLETE_DAYS = config('WITHDRAWAL_AUTO_COMPLETE_DAYS', default=7, cast=int)

# Credits charged to generate a proposal
PROPOSAL_CREDIT_COST = config('PROPOSAL_CREDIT_COST', default=2, cast=int)

# Reais per kWh used to estimate a lead's bill value on import
KWH_TO_REAIS_FACTOR = config('KWH_TO_REAIS_FACTOR', default='1.093113', cast=Decimal)

# New seller defaults
DEFAULT_ASSIGNMENT_LIMIT = config('DEFAULT_ASSIGNMENT_LIMIT', default=2, cast=int)
DEFAULT_COMMISSION_RATE = config('DEFAULT_COMMISSION_RATE', default=40, cast=int)


# CUSTOM SETTINGS

PAGINATION_SIZE = 25

SESSION_COOKIE_AGE = 86400  # 24 hours in seconds

FILE_UPLOAD_MAX_MEMORY_SIZE = 5 * 1024 * 1024  # 5 MB
DATA_UPLOAD_MAX_MEMORY_SIZE = 10 * 1024 * 1024  # 10 MB

LEAD_IMPORT_MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB for lead import files


# SECURITY SETTINGS (Production)

if not DEBUG:
    SECURE_SSL_REDIRECT = True
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True

    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = 'DENY'

    SECURE_HSTS_SECONDS = 31536000  # 1 year
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True


# DEFAULT AUTO FIELD

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

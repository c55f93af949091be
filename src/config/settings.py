import re
from pathlib import Path

import structlog
from decouple import Csv, config

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Security - Fail Fast: no default forces explicit configuration
SECRET_KEY = config("SECRET_KEY")

DEBUG = config("DEBUG", default=False, cast=bool)

ALLOWED_HOSTS = config("ALLOWED_HOSTS", default="127.0.0.1,localhost", cast=Csv())

# Application definition
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    # Third-party
    "rest_framework",
    # Local Apps (Modules)
    "modules.core",
    "modules.products",
    "modules.carts",
    "modules.conversations",
    "modules.orders",
    "modules.admins",
    "modules.bot",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "modules.core.middleware.CorrelationIdMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "config.urls"

WSGI_APPLICATION = "config.wsgi.application"

# The catalog, carts, sessions and the order ledger live in process memory.
DATABASES = {}

# Cache - Redis when configured (shared webhook de-duplication across
# workers), local memory otherwise.
REDIS_URL = config("REDIS_URL", default="")

if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django_redis.cache.RedisCache",
            "LOCATION": REDIS_URL,
            "OPTIONS": {
                "CLIENT_CLASS": "django_redis.client.DefaultClient",
            },
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "bot",
        }
    }

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = config("TIME_ZONE", default="Asia/Jakarta")
USE_I18N = True
USE_TZ = True

# DRF Configuration
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "UNAUTHENTICATED_USER": None,
}

# ---------------------------------------------------------------------------
# Bot
# ---------------------------------------------------------------------------
BOT_OWNER_ID = config("BOT_OWNER_ID", default="")
BOT_OWNER_USERNAME = config("BOT_OWNER_USERNAME", default="")
BOT_ADMIN_IDS = config("BOT_ADMIN_IDS", default="", cast=Csv())

# Echoed by the platform in X-Telegram-Bot-Api-Secret-Token; empty disables.
BOT_WEBHOOK_SECRET = config("BOT_WEBHOOK_SECRET", default="")

# Whether "batal"/"cancel" also empties the cart.
BOT_CANCEL_CLEARS_CART = config("BOT_CANCEL_CLEARS_CART", default=False, cast=bool)

# Seconds; 0 disables.
BOT_SESSION_IDLE_TIMEOUT = config(
    "BOT_SESSION_IDLE_TIMEOUT", default=6 * 60 * 60, cast=int
)
BOT_SESSION_SWEEP_INTERVAL = config(
    "BOT_SESSION_SWEEP_INTERVAL", default=300, cast=int
)
BOT_UPDATE_DEDUP_TTL = config("BOT_UPDATE_DEDUP_TTL", default=24 * 60 * 60, cast=int)

# Dotted path of the IMessenger implementation talking to the platform.
BOT_MESSENGER_CLASS = config(
    "BOT_MESSENGER_CLASS", default="modules.bot.messenger.InMemoryMessenger"
)
BOT_PAYMENT_INSTRUCTIONS = config("BOT_PAYMENT_INSTRUCTIONS", default="")
BOT_CURRENCY = config("BOT_CURRENCY", default="Rp")

# ---------------------------------------------------------------------------
# Structured Logging (structlog + Django LOGGING)
# ---------------------------------------------------------------------------
SENSITIVE_PATTERN = re.compile(
    r"(\d{8,10}:[A-Za-z0-9_-]{35})"  # bot token
    r"|(password|passwd|secret|token|authorization)"
    r"""([=:]\s*["']?)([^\s,}"']+)""",
    re.IGNORECASE,
)


def mask_sensitive_data(_, __, event_dict):
    """Processor that masks bot tokens, passwords and secrets in log values."""
    for key, value in list(event_dict.items()):
        if isinstance(value, str):
            event_dict[key] = SENSITIVE_PATTERN.sub("***MASKED***", value)
    return event_dict


# Shared processors used by both structlog and stdlib logging
_shared_processors = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    mask_sensitive_data,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]

structlog.configure(
    processors=[
        *_shared_processors,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": structlog.stdlib.ProcessorFormatter,
            "processors": [
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.JSONRenderer(),
            ],
            "foreign_pre_chain": _shared_processors,
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": config("LOG_LEVEL", default="INFO"),
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "django.server": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}

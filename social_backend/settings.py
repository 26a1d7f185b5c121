from pathlib import Path
import os
import tempfile

import structlog
from dotenv import load_dotenv
from django.core.exceptions import ImproperlyConfigured

# -----------------------------------------------------
# Helpers
# -----------------------------------------------------
def env(name: str, default=None, *, required: bool = False):
    val = os.getenv(name, default)
    if required and (val is None or (isinstance(val, str) and val.strip() == "")):
        raise ImproperlyConfigured(f"Missing required environment variable: {name}")
    return val

def env_bool(name: str, default: bool = False) -> bool:
    return str(os.getenv(name, str(default))).lower() in {"1", "true", "yes", "on"}

def env_int(name: str, default: int) -> int:
    try:
        return int(env(name, str(default)))
    except ValueError:
        raise ImproperlyConfigured(f"Environment variable {name} must be an integer")

# -----------------------------------------------------
# Paths & basics
# -----------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

DEBUG = env_bool("DEBUG", False)

# In production (DEBUG=False) you must set a strong secret in .env
SECRET_KEY = env("DJANGO_SECRET_KEY", "dev-only-secret-key-change-me", required=not DEBUG)

# Keep hosts explicit by default
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost,testserver").split(",") if h.strip()]

# -----------------------------------------------------
# Applications
# -----------------------------------------------------
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Third-party
    "rest_framework",

    # Local
    "content",
    "transcoding",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "social_backend.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "social_backend.wsgi.application"

# -----------------------------------------------------
# Database (Postgres if DB_* env vars set, else SQLite)
# -----------------------------------------------------
if os.getenv("DB_HOST"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": env("DB_NAME", "social_backend"),
            "USER": env("DB_USER", "social_user"),
            "PASSWORD": env("DB_PASSWORD", ""),
            "HOST": env("DB_HOST", "127.0.0.1"),
            "PORT": env("DB_PORT", "5432"),
            "CONN_MAX_AGE": int(env("DB_CONN_MAX_AGE", "60")),  # keep-alive
            "OPTIONS": {
                **({"sslmode": os.getenv("DB_SSLMODE")} if os.getenv("DB_SSLMODE") else {})
            },
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
            "OPTIONS": {"timeout": 20},
            # Worker threads open their own connections, so tests need a file db.
            "TEST": {"NAME": str(BASE_DIR / "test_db.sqlite3")},
        }
    }

# -----------------------------------------------------
# Password validation
# -----------------------------------------------------
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# -----------------------------------------------------
# Internationalization
# -----------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# -----------------------------------------------------
# Static & Media
# -----------------------------------------------------
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

MEDIA_URL = "/media/"
MEDIA_ROOT = BASE_DIR / "media"

# -----------------------------------------------------
# Django REST Framework
# -----------------------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
        "rest_framework.renderers.BrowsableAPIRenderer" if DEBUG else "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
        "rest_framework.parsers.FormParser",
        "rest_framework.parsers.MultiPartParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ],
}

CSRF_TRUSTED_ORIGINS = [
    o.strip() for o in os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if o.strip()
]

# -----------------------------------------------------
# Celery / Redis
# -----------------------------------------------------
CELERY_BROKER_URL = env("CELERY_BROKER_URL", "redis://127.0.0.1:6379/0")
CELERY_RESULT_BACKEND = env("CELERY_RESULT_BACKEND", "redis://127.0.0.1:6379/0")
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = int(env("CELERY_TASK_TIME_LIMIT", str(60 * 15)))  # seconds
CELERY_BEAT_SCHEDULE = {
    "transcoding-reconcile-completed": {
        "task": "transcoding.tasks.reconcile_completed_jobs",
        "schedule": 60.0,
    },
    "transcoding-fail-stale": {
        "task": "transcoding.tasks.fail_stale_jobs",
        "schedule": 15 * 60.0,
    },
    "transcoding-purge-work-dir": {
        "task": "transcoding.tasks.purge_work_dir",
        "schedule": 60 * 60.0,
    },
}

# -----------------------------------------------------
# Default PK type
# -----------------------------------------------------
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------------------
# S3 / MinIO (env-driven; no hardcoded secrets)
# -----------------------------------------------------
S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL") or "http://127.0.0.1:9000"  # fine for local
S3_PUBLIC_ENDPOINT = os.getenv("S3_PUBLIC_ENDPOINT", S3_ENDPOINT_URL)
S3_REGION = os.getenv("S3_REGION", "us-east-1")
S3_BUCKET = os.getenv("S3_BUCKET", "media-local")
S3_ACCESS_KEY = os.getenv("S3_ACCESS_KEY")          # set in .env for local
S3_SECRET_KEY = os.getenv("S3_SECRET_KEY")          # set in .env for local

# -----------------------------------------------------
# Video transcoding
# -----------------------------------------------------
FFMPEG_BIN = env("FFMPEG_BIN", "ffmpeg")
FFPROBE_BIN = env("FFPROBE_BIN", "ffprobe")

# "s3" publishes normalized videos to S3/MinIO, "local" to MEDIA_ROOT
TRANSCODING_STORAGE_BACKEND = env("TRANSCODING_STORAGE_BACKEND", "s3")
TRANSCODING_WORK_DIR = Path(env("TRANSCODING_WORK_DIR", str(Path(tempfile.gettempdir()) / "video_transcoding")))

TRANSCODING_WORKERS = env_int("TRANSCODING_WORKERS", 2)
TRANSCODING_QUEUE_CAPACITY = env_int("TRANSCODING_QUEUE_CAPACITY", 100)  # 0 = unbounded
TRANSCODING_JOB_TIMEOUT_SECONDS = env_int("TRANSCODING_JOB_TIMEOUT_SECONDS", 30 * 60)
TRANSCODING_PROGRESS_INTERVAL_SECONDS = env_int("TRANSCODING_PROGRESS_INTERVAL_SECONDS", 5)

# dotted paths of callables that receive every job.completed / job.failed event
TRANSCODING_NOTIFIERS = [p.strip() for p in env("TRANSCODING_NOTIFIERS", "").split(",") if p.strip()]

# maintenance tasks (transcoding.tasks)
TRANSCODING_STALE_AFTER_SECONDS = env_int("TRANSCODING_STALE_AFTER_SECONDS", 6 * 60 * 60)
TRANSCODING_WORK_FILE_MAX_AGE_SECONDS = env_int("TRANSCODING_WORK_FILE_MAX_AGE_SECONDS", 24 * 60 * 60)
TRANSCODING_RECONCILE_LOOKBACK_SECONDS = env_int("TRANSCODING_RECONCILE_LOOKBACK_SECONDS", 24 * 60 * 60)

# one transcoding job per worker slot; the soft limit fails the job, the hard one kills the worker child
CELERY_WORKER_CONCURRENCY = TRANSCODING_WORKERS
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_TASK_ANNOTATIONS = {
    "transcoding.tasks.transcode_job": {
        "soft_time_limit": TRANSCODING_JOB_TIMEOUT_SECONDS + 120,
        "time_limit": TRANSCODING_JOB_TIMEOUT_SECONDS + 180,
    },
}

# -----------------------------------------------------
# Logging (structlog)
# -----------------------------------------------------
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        *(
            [structlog.dev.ConsoleRenderer()]
            if DEBUG
            else [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        ),
    ],
    cache_logger_on_first_use=True,
)

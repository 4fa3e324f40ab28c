from pathlib import Path
import os

from dotenv import load_dotenv
import dj_database_url

BASE_DIR = Path(__file__).resolve().parent.parent

# ==============================================================================
# 1. CARREGAMENTO DE AMBIENTE
# ==============================================================================

# Em produção tudo vem via variáveis de ambiente do sistema;
# os arquivos .env só servem para rodar localmente.

ENVIRONMENT = os.getenv("DJANGO_ENV", "development").lower()

env_file = BASE_DIR / (".env.development" if ENVIRONMENT == "development" else ".env.production")
if env_file.exists():
    load_dotenv(env_file, encoding="utf-8")

# ==============================================================================
# 2. CONFIGURAÇÕES GERAIS
# ==============================================================================

DEBUG = os.getenv("DEBUG", "False").lower() == "true"

SECRET_KEY = os.getenv("SECRET_KEY", "django-insecure-chave-padrao-dev")

ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost,").split(",")

# ==============================================================================
# 3. BANCO DE DADOS
# ==============================================================================

if ENVIRONMENT == "development":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }
else:
    DATABASES = {
        "default": dj_database_url.config(
            default=os.environ.get("DATABASE_URL"),
            conn_max_age=60,
            ssl_require=True,  # Supabase normalmente requer SSL
        )
    }

# ==============================================================================
# 4. APPS E MIDDLEWARE
# ==============================================================================

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "core",
    "cards",
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

ROOT_URLCONF = "cartoesv2.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "cartoesv2.wsgi.application"

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# ==============================================================================
# 5. LOGS
# ==============================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "cards": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "core": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}

# ==============================================================================
# 6. CARTÕES / FATURAS
# ==============================================================================

# Caminho da função (purchase_date, closing_day) -> primeiro dia do mês da fatura
CARDS_STATEMENT_RESOLVER = os.getenv(
    "CARDS_STATEMENT_RESOLVER", "cards.billing.resolve_statement_month"
)
# Diferença máxima de total para considerar duas compras a mesma (centavos de arredondamento)
CARDS_DUPLICATE_TOLERANCE = os.getenv("CARDS_DUPLICATE_TOLERANCE", "0.10")
# Quantos meses uma despesa fixa gera de uma vez
CARDS_FIXED_MONTHS_AHEAD = int(os.getenv("CARDS_FIXED_MONTHS_AHEAD", "12"))

# ==============================================================================
# 7. INTERNACIONALIZAÇÃO
# ==============================================================================

LANGUAGE_CODE = "pt-br"
TIME_ZONE = "America/Sao_Paulo"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

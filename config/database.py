"""
Database configuration for the task tracker.

Resolution order:
1. DATABASE_URL (postgres://... or sqlite:///path)
2. DB_HOST plus the other DB_* variables (PostgreSQL)
3. SQLite file under BASE_DIR

The connection itself is owned by Django: opened lazily on first query,
closed at the end of each request (or after CONN_MAX_AGE seconds).
"""
import os
from pathlib import Path
from urllib.parse import unquote, urlparse

POSTGRES_SCHEMES = ('postgres', 'postgresql')


def get_database_config(base_dir: Path) -> dict:
    """Returns the 'default' entry of DATABASES for the current environment."""
    database_url = os.getenv('DATABASE_URL', '').strip()
    if database_url:
        return parse_database_url(database_url, base_dir)

    if os.getenv('DB_HOST'):
        return _with_runtime_options({
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.getenv('DB_NAME', 'tasktracker'),
            'USER': os.getenv('DB_USER', 'postgres'),
            'PASSWORD': os.getenv('DB_PASSWORD', ''),
            'HOST': os.getenv('DB_HOST'),
            'PORT': os.getenv('DB_PORT', '5432'),
        })

    return {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': base_dir / 'db.sqlite3',
    }


def parse_database_url(url: str, base_dir: Path) -> dict:
    """
    Turn a DATABASE_URL into a Django database dict.

    Raises:
        ValueError: unsupported scheme or missing database name.
    """
    parsed = urlparse(url)

    if parsed.scheme == 'sqlite':
        name = unquote(parsed.path.lstrip('/')) if parsed.path not in ('', '/') else ''
        return {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': name or base_dir / 'db.sqlite3',
        }

    if parsed.scheme not in POSTGRES_SCHEMES:
        raise ValueError(f"Unsupported DATABASE_URL scheme: {parsed.scheme or '(none)'}")

    name = parsed.path.lstrip('/')
    if not name:
        raise ValueError("DATABASE_URL is missing the database name")

    return _with_runtime_options({
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': unquote(name),
        'USER': unquote(parsed.username or ''),
        'PASSWORD': unquote(parsed.password or ''),
        'HOST': parsed.hostname or 'localhost',
        'PORT': str(parsed.port or 5432),
    })


def _with_runtime_options(config: dict) -> dict:
    """Connection reuse for servers; short-lived connections on Lambda."""
    if os.getenv('AWS_LAMBDA_FUNCTION_NAME'):
        # RDS Proxy pools connections across invocations
        config['CONN_MAX_AGE'] = 0
        config['OPTIONS'] = {
            'connect_timeout': 5,
            'options': '-c statement_timeout=30000',
        }
    else:
        config['CONN_MAX_AGE'] = int(os.getenv('DB_CONN_MAX_AGE', '60'))
    return config

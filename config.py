"""
Configuration settings for the Prismic migration CLI
"""

import os
from pathlib import Path

# Prismic service endpoints
AUTH_URL = "https://auth.prismic.io/login"
ASSET_API_URL = "https://asset-api.prismic.io/assets"
CUSTOM_TYPES_API_URL = "https://customtypes.prismic.io"
MIGRATION_API_URL = "https://migration.prismic.io/documents"
CONTENT_API_TEMPLATE = "https://{repository}.cdn.prismic.io/api/v2"

# Asset inventory settings
ASSET_LIST_LIMIT = 1000  # single capped page, no pagination loop
DOCUMENTS_PAGE_SIZE = 100

# Environment files read by the secrets manager, first match wins
ENV_FILES = [".env.local", ".env"]

# Local asset cache: <ASSET_CACHE_DIR>/<asset id>/<filename>
ASSET_CACHE_DIR = Path("images")

# Batch operation settings
DOCUMENT_DELAY = 3  # seconds between document submissions
UPLOAD_DELAY = 1.5  # seconds between asset uploads
RATE_LIMIT_BACKOFF = 10  # seconds before the single retry on HTTP 429
RATE_LIMIT_RETRIES = 1
RATE_LIMIT_STATUS = 429

# Logging settings
LOG_LEVEL = os.getenv("PRISMIC_MIGRATE_LOG_LEVEL", "INFO")
LOG_FILE = "prismic_migrate.log"
LOG_DIR = Path("logs")
PROGRESS_LOG_STEPS = 10  # console progress lines per batch
LOG_ROTATION_SIZE = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5

# Per-document outcome log (JSONL)
RUN_LOG_FILE = LOG_DIR / "migration_runs.jsonl"

# Local state
STATE_DIR = Path.home() / ".prismic_migrate"
STATE_FILE = "wizard_state.json"
DATABASE_FILE = "migration.db"

# Token cache
SESSION_TTL_HOURS = 12

# Performance settings
REQUEST_TIMEOUT = 10  # seconds
DOWNLOAD_TIMEOUT = 60  # seconds
CHUNK_SIZE = 64 * 1024

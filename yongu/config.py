"""
Yongu CRM Configuration
Loads settings from environment variables with sensible defaults.
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

# Load .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)


def _int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        _logger.critical(f"{name} must be an integer, got {raw!r}")
        raise ValueError(f"{name} must be an integer, got {raw!r}")


class Config:
    """Application configuration."""

    # Local storage slot: one directory per installation, one file per key
    DATA_DIR = Path(os.getenv('YONGU_DATA_DIR', str(Path.home() / '.yongu'))).expanduser()
    LOCAL_STORAGE_QUOTA_BYTES = _int_env('LOCAL_STORAGE_QUOTA_BYTES', str(5 * 1024 * 1024))

    # File backend: default document path when --file is not given
    DB_FILE = os.getenv('YONGU_DB_FILE', '')

    # Optional: keep the local slot in PostgreSQL instead of DATA_DIR
    DATABASE_URL = os.getenv('DATABASE_URL', '')

    # CSV interchange
    CSV_DATE_FORMAT = os.getenv('CSV_DATE_FORMAT', '%m/%d/%Y')

    # Dashboard
    FOLLOW_UP_LIMIT = _int_env('FOLLOW_UP_LIMIT', '5')

    # AI Configuration
    # DeepSeek (job search, routine drafts)
    DEEPSEEK_API_KEY = os.getenv('DEEPSEEK_API_KEY', '')
    DEEPSEEK_BASE_URL = os.getenv('DEEPSEEK_BASE_URL', 'https://api.deepseek.com')
    DEFAULT_AI_MODEL = os.getenv('DEFAULT_AI_MODEL', 'deepseek-chat')
    # Claude (outreach emails)
    ANTHROPIC_API_KEY = os.getenv('ANTHROPIC_API_KEY', '')
    AI_TIMEOUT_SECONDS = _int_env('AI_TIMEOUT_SECONDS', '60')


# Singleton instance
config = Config()

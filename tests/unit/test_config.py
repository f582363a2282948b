"""
Unit tests for application configuration (yongu/config.py).

Config is a class with attributes set at class-body parse time, and a module-level
singleton created immediately after. Testing different env var states requires
re-importing the module, with load_dotenv mocked to a no-op so the .env file on
disk doesn't override what we set in the test environment.
"""

import importlib
import sys
from pathlib import Path
from unittest.mock import patch

import pytest


def _reload_config(env_overrides: dict):
    """
    Import yongu.config fresh under a controlled environment.
    Always restores the original module in sys.modules afterward.
    """
    original = sys.modules.get('yongu.config')
    try:
        with patch.dict('os.environ', env_overrides, clear=True), \
             patch('dotenv.load_dotenv'):
            sys.modules.pop('yongu.config', None)
            return importlib.import_module('yongu.config')
    finally:
        if original is not None:
            sys.modules['yongu.config'] = original
        elif 'yongu.config' in sys.modules:
            del sys.modules['yongu.config']


# ---------------------------------------------------------------------------
# Defaults: nothing is required to start
# ---------------------------------------------------------------------------

def test_empty_environment_loads():
    mod = _reload_config({})
    assert mod.config is not None


def test_data_dir_default_is_in_home():
    mod = _reload_config({'HOME': '/home/kim'})
    assert mod.Config.DATA_DIR == Path('/home/kim/.yongu')


def test_quota_default_is_five_mib():
    assert _reload_config({}).Config.LOCAL_STORAGE_QUOTA_BYTES == 5 * 1024 * 1024


def test_file_and_database_default_to_unset():
    mod = _reload_config({})
    assert mod.Config.DB_FILE == ''
    assert mod.Config.DATABASE_URL == ''


def test_csv_date_format_default():
    assert _reload_config({}).Config.CSV_DATE_FORMAT == '%m/%d/%Y'


def test_follow_up_limit_default():
    assert _reload_config({}).Config.FOLLOW_UP_LIMIT == 5


def test_ai_defaults():
    mod = _reload_config({})
    assert mod.Config.DEFAULT_AI_MODEL == 'deepseek-chat'
    assert mod.Config.DEEPSEEK_BASE_URL == 'https://api.deepseek.com'
    assert mod.Config.ANTHROPIC_API_KEY == ''
    assert mod.Config.AI_TIMEOUT_SECONDS == 60


# ---------------------------------------------------------------------------
# Custom env var values are picked up
# ---------------------------------------------------------------------------

def test_custom_data_dir_is_expanded():
    mod = _reload_config({'YONGU_DATA_DIR': '~/crm', 'HOME': '/home/kim'})
    assert mod.Config.DATA_DIR == Path('/home/kim/crm')


def test_custom_db_file():
    mod = _reload_config({'YONGU_DB_FILE': '/data/clients.yongu'})
    assert mod.Config.DB_FILE == '/data/clients.yongu'


def test_custom_quota():
    mod = _reload_config({'LOCAL_STORAGE_QUOTA_BYTES': '1024'})
    assert mod.Config.LOCAL_STORAGE_QUOTA_BYTES == 1024


def test_custom_csv_date_format():
    mod = _reload_config({'CSV_DATE_FORMAT': '%d.%m.%Y'})
    assert mod.Config.CSV_DATE_FORMAT == '%d.%m.%Y'


def test_custom_ai_settings():
    mod = _reload_config({
        'ANTHROPIC_API_KEY': 'sk-ant',
        'DEFAULT_AI_MODEL': 'claude',
        'AI_TIMEOUT_SECONDS': '15',
    })
    assert mod.Config.ANTHROPIC_API_KEY == 'sk-ant'
    assert mod.Config.DEFAULT_AI_MODEL == 'claude'
    assert mod.Config.AI_TIMEOUT_SECONDS == 15


# ---------------------------------------------------------------------------
# Bad integers fail at startup
# ---------------------------------------------------------------------------

@pytest.mark.parametrize('name', ['LOCAL_STORAGE_QUOTA_BYTES', 'FOLLOW_UP_LIMIT', 'AI_TIMEOUT_SECONDS'])
def test_non_integer_raises_value_error(name):
    with pytest.raises(ValueError, match=name):
        _reload_config({name: 'lots'})

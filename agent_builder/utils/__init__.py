"""
Agent Builder Utilities

Shared configuration, HTTP and console helpers.
"""
from .config import get_config_manager, ConfigManager, AppConfig, ProviderConfig, ChainConfig, EngineConfig
from .common import (
    print_section,
    save_json,
    load_json,
    truncate,
)

__all__ = [
    'get_config_manager',
    'ConfigManager',
    'AppConfig',
    'ProviderConfig',
    'ChainConfig',
    'EngineConfig',
    'print_section',
    'save_json',
    'load_json',
    'truncate',
]

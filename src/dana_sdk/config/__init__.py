"""
Configuration management for DANA Python SDK
"""

from .partner_config import (
    PartnerConfig,
    ENV_PREFIX,
    DEFAULT_CHANNEL_ID,
    DEFAULT_TOKEN_PATH,
    DEFAULT_TIMEOUT,
    PRIVATE_KEY_STORAGE_NAME,
    PUBLIC_KEY_STORAGE_NAME,
    load_partner_config,
)

__all__ = [
    'PartnerConfig',
    'ENV_PREFIX',
    'DEFAULT_CHANNEL_ID',
    'DEFAULT_TOKEN_PATH',
    'DEFAULT_TIMEOUT',
    'PRIVATE_KEY_STORAGE_NAME',
    'PUBLIC_KEY_STORAGE_NAME',
    'load_partner_config',
]

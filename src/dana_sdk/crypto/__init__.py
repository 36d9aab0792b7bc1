"""
Cryptographic operations for DANA Python SDK
"""

from .keys import (
    KeyRole,
    KeyMaterial,
    PEM_LINE_LENGTH,
    format_key_block,
    split_into_chunks,
    load_private_key,
    load_public_key,
    private_key_material,
    public_key_material,
)

from .rsa import (
    sign_content,
    verify_content,
)

from .storage import (
    KeyMaterialStore,
    STORAGE_SERVICE_NAME,
    get_default_store,
)

__all__ = [
    'KeyRole',
    'KeyMaterial',
    'PEM_LINE_LENGTH',
    'format_key_block',
    'split_into_chunks',
    'load_private_key',
    'load_public_key',
    'private_key_material',
    'public_key_material',
    'sign_content',
    'verify_content',
    'KeyMaterialStore',
    'STORAGE_SERVICE_NAME',
    'get_default_store',
]

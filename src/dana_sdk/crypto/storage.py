"""
Key material storage for DANA Python SDK

Keeps the partner-issued base64 key strings in the OS keychain through the
keyring package so they do not have to live in environment files.
"""

import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..exceptions import StorageError
from .keys import KeyMaterial, KeyRole, format_key_block

logger = logging.getLogger(__name__)

STORAGE_SERVICE_NAME = "DANA SDK"


class KeyMaterialStore:
    """
    OS keychain backed store for key material.

    Entries are saved as "<service>:<name>" with the role recorded as a
    prefix, so a stored public key cannot be loaded back as a private key.
    """

    def __init__(self, service_name: str = STORAGE_SERVICE_NAME):
        self.service_name = service_name

    def _get_key_identifier(self, name: str) -> str:
        return f"{self.service_name}:{name}"

    @staticmethod
    def _validate_name(name: str) -> None:
        if not name or not isinstance(name, str):
            raise StorageError("Key name must be a non-empty string", "INVALID_KEY_NAME")

    def store(self, name: str, material: KeyMaterial) -> None:
        """
        Store key material under a name.

        Args:
            name: Storage name
            material: Key material to save (validated before storing)

        Raises:
            StorageError: If the keyring rejects the write
            KeyFormatError: If the material is not valid base64
        """
        self._validate_name(name)
        # Validates the payload; malformed keys never reach the keychain
        format_key_block(material.value, material.role)

        try:
            keyring.set_password(
                self.service_name,
                self._get_key_identifier(name),
                f"{material.role.value}:{material.value.strip()}"
            )
        except KeyringError as e:
            raise StorageError(f"Keyring storage failed: {e}", "KEYRING_STORAGE_FAILED")

        logger.info(f"Stored {material.role.value.lower()} key material as '{name}'")

    def load(self, name: str, role: KeyRole) -> Optional[KeyMaterial]:
        """
        Load key material by name.

        Args:
            name: Storage name
            role: Expected key role

        Returns:
            KeyMaterial or None when nothing is stored under name

        Raises:
            StorageError: On keyring failure or role mismatch
        """
        self._validate_name(name)

        try:
            stored = keyring.get_password(self.service_name, self._get_key_identifier(name))
        except KeyringError as e:
            raise StorageError(f"Keyring retrieval failed: {e}", "KEYRING_RETRIEVAL_FAILED")

        if stored is None:
            return None

        stored_role, sep, value = stored.partition(":")
        if not sep or stored_role not in KeyRole.__members__:
            raise StorageError(f"Stored entry '{name}' is corrupted", "CORRUPTED_ENTRY")

        if KeyRole(stored_role) != KeyRole(role):
            raise StorageError(
                f"Stored entry '{name}' holds a {stored_role} key, expected {KeyRole(role).value}",
                "KEY_ROLE_MISMATCH"
            )

        return KeyMaterial(value=value, role=KeyRole(stored_role))

    def exists(self, name: str) -> bool:
        """Check whether an entry is stored under name."""
        self._validate_name(name)
        try:
            return keyring.get_password(self.service_name, self._get_key_identifier(name)) is not None
        except KeyringError as e:
            raise StorageError(f"Keyring retrieval failed: {e}", "KEYRING_RETRIEVAL_FAILED")

    def delete(self, name: str) -> bool:
        """
        Delete the entry stored under name.

        Returns:
            bool: True if an entry was deleted, False if none existed
        """
        self._validate_name(name)
        try:
            keyring.delete_password(self.service_name, self._get_key_identifier(name))
            return True
        except PasswordDeleteError:
            return False
        except KeyringError as e:
            raise StorageError(f"Keyring deletion failed: {e}", "KEYRING_DELETE_FAILED")


_default_store: Optional[KeyMaterialStore] = None


def get_default_store() -> KeyMaterialStore:
    """
    Get the shared key material store instance

    Returns:
        KeyMaterialStore: Store using the default service name
    """
    global _default_store
    if _default_store is None:
        _default_store = KeyMaterialStore()
    return _default_store

"""
Resolution of the MongoDB connection string at startup.

The connection string is read from exactly one source, selected by the
``SECRETS_MODE`` setting:

* ``file`` - a local file, optionally encrypted with a Cloud KMS key
* ``env`` - an environment variable
* ``api`` - a Secret Manager secret version
* ``auto`` - Secret Manager first, then the environment variable

Every failure raises a ``SecretResolutionError``. The resolver never
terminates the process itself; that decision belongs to the entry point.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Callable, Dict

import google_crc32c
import structlog
from google.cloud import kms
from google.cloud import secretmanager

from library_api.config import APIConfig

logger = structlog.get_logger(__name__)


class SecretResolutionError(Exception):
    """Base error for any failure to produce a connection string."""


class SecretConfigurationError(SecretResolutionError):
    """The secret source is not configured correctly."""


class SecretSourceError(SecretResolutionError):
    """The configured source could not provide a value."""


class SecretIntegrityError(SecretResolutionError):
    """A cloud response failed its CRC32C integrity check."""


class SecretMode(str, Enum):
    """Secret source selector."""
    FILE = "file"
    ENV = "env"
    API = "api"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: str) -> "SecretMode":
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(f'"{mode.value}"' for mode in cls)
            raise SecretConfigurationError(
                f"You need to specify a valid secrets mode ({valid}), instead I got {value!r}"
            ) from None


def crc32c(data: bytes) -> int:
    """Compute the CRC32C checksum used by Cloud KMS and Secret Manager."""
    return google_crc32c.value(data)


def _read_secret_file(path: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise SecretSourceError(f"Error accessing secret file at location {path}: {e}") from e


def _decode_secret(data: bytes, source: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise SecretSourceError(f"Secret from {source} is not valid UTF-8: {e}") from e


def decrypt_symmetric(key_name: str, ciphertext: bytes) -> bytes:
    """
    Decrypt a ciphertext with a symmetric Cloud KMS key.

    Args:
        key_name: Full resource name of the crypto key
        ciphertext: Result of a previous symmetric encrypt call

    Returns:
        The decrypted plaintext bytes

    Raises:
        SecretSourceError: If the client cannot be created or the KMS call fails
        SecretIntegrityError: If the plaintext checksum does not match
    """
    try:
        client = kms.KeyManagementServiceClient()
    except Exception as e:
        raise SecretSourceError(f"failed to create kms client: {e}") from e

    with client:
        try:
            response = client.decrypt(
                request={
                    "name": key_name,
                    "ciphertext": ciphertext,
                    "ciphertext_crc32c": crc32c(ciphertext),
                }
            )
        except Exception as e:
            raise SecretSourceError(f"failed to decrypt ciphertext: {e}") from e

    if response.plaintext_crc32c != crc32c(response.plaintext):
        raise SecretIntegrityError("decrypt: response corrupted in-transit")

    return response.plaintext


def access_secret_version(project_id: str, secret_id: str, version: str = "latest") -> bytes:
    """
    Fetch the payload of a Secret Manager secret version.

    Raises:
        SecretSourceError: If the client cannot be created or the call fails
        SecretIntegrityError: If the payload checksum does not match
    """
    try:
        client = secretmanager.SecretManagerServiceClient()
    except Exception as e:
        raise SecretSourceError(f"failed to setup secret manager client: {e}") from e

    with client:
        name = client.secret_version_path(project_id, secret_id, version)
        try:
            response = client.access_secret_version(request={"name": name})
        except Exception as e:
            raise SecretSourceError(f"Failed to get secret version {name}: {e}") from e

    payload = response.payload
    if payload.data_crc32c and payload.data_crc32c != crc32c(payload.data):
        raise SecretIntegrityError(f"Secret version {name} payload corrupted in-transit")

    logger.info("Retrieved secret payload", secret=response.name)
    return payload.data


def resolve_from_file(settings: APIConfig) -> str:
    """
    Read the URI from the plaintext file or decrypt the encrypted one.

    The file content is returned as-is; ``resolve_connection_uri`` strips
    surrounding whitespace, so a trailing newline in the file is dropped.
    """
    if settings.secret_encryption:
        path = settings.encrypted_secret_path
        ciphertext = _read_secret_file(path)
        logger.info("Decrypting secret file", path=path, key_name=settings.kms_key_name)
        return _decode_secret(decrypt_symmetric(settings.kms_key_name, ciphertext), path)

    path = settings.plaintext_secret_path
    logger.info("Reading secret file", path=path)
    return _decode_secret(_read_secret_file(path), path)


def resolve_from_env(settings: APIConfig) -> str:
    uri = os.environ.get(settings.uri_env_var, "")
    if not uri:
        raise SecretSourceError(
            f"Environment variable {settings.uri_env_var} seems to be empty or undefined."
        )
    return uri


def resolve_from_api(settings: APIConfig) -> str:
    data = access_secret_version(
        settings.gcp_project_id, settings.secret_id, settings.secret_version
    )
    return _decode_secret(data, f"secret {settings.secret_id}")


def resolve_with_fallback(settings: APIConfig) -> str:
    """Try Secret Manager first and fall back to the environment variable."""
    try:
        uri = resolve_from_api(settings)
    except SecretResolutionError as e:
        logger.warning("Secret Manager lookup failed, falling back to environment", error=str(e))
        uri = ""

    if uri.strip():
        return uri

    logger.info("Loading connection string from environment", variable=settings.uri_env_var)
    return resolve_from_env(settings)


RESOLVERS: Dict[SecretMode, Callable[[APIConfig], str]] = {
    SecretMode.FILE: resolve_from_file,
    SecretMode.ENV: resolve_from_env,
    SecretMode.API: resolve_from_api,
    SecretMode.AUTO: resolve_with_fallback,
}


def resolve_connection_uri(settings: APIConfig) -> str:
    """
    Produce the MongoDB connection string for the configured secrets mode.

    Args:
        settings: Application settings carrying the mode and its inputs

    Returns:
        The connection URI with surrounding whitespace removed

    Raises:
        SecretResolutionError: If the mode is invalid or its source fails
    """
    mode = SecretMode.parse(settings.secrets_mode)
    logger.info("Trying to load connection string", secrets_mode=mode.value)

    uri = RESOLVERS[mode](settings).strip()
    if not uri:
        raise SecretSourceError(f"Secrets mode {mode.value!r} produced an empty connection string")

    logger.info("Connection string loaded", secrets_mode=mode.value)
    return uri

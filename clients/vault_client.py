"""
HashiCorp Vault access for the invoice engine's secrets.

AppRole login, KV v2 reads under a single project prefix ('gst/' unless
VAULT_SECRET_PREFIX says otherwise). Missing configuration fails at
construction, never at first read.
"""

import os
import logging
from typing import Dict

import hvac
from hvac.exceptions import Forbidden, InvalidPath, Unauthorized, VaultError
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Shared client and per-process secret cache
_vault_client_instance: "VaultClient | None" = None
_secret_cache: Dict[str, str] = {}


class VaultSettings(BaseModel):
    """Connection and scope settings, normally read from the environment."""

    addr: str = Field(..., min_length=1)
    role_id: str = Field(..., min_length=1)
    secret_id: str = Field(..., min_length=1)
    namespace: str | None = None
    mount_point: str = "secret"
    prefix: str = Field(default="gst", min_length=1)

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls) -> "VaultSettings":
        addr = os.getenv("VAULT_ADDR")
        role_id = os.getenv("VAULT_ROLE_ID")
        secret_id = os.getenv("VAULT_SECRET_ID")

        if not addr:
            raise ValueError("VAULT_ADDR environment variable is required")
        if not role_id or not secret_id:
            raise ValueError(
                "VAULT_ROLE_ID and VAULT_SECRET_ID environment variables are required"
            )

        return cls(
            addr=addr,
            role_id=role_id,
            secret_id=secret_id,
            namespace=os.getenv("VAULT_NAMESPACE") or None,
            mount_point=os.getenv("VAULT_MOUNT_POINT") or "secret",
            prefix=os.getenv("VAULT_SECRET_PREFIX") or "gst",
        )


class VaultClient:
    """Authenticated KV v2 reader confined to one secret prefix."""

    def __init__(self, settings: VaultSettings | None = None):
        self.settings = settings or VaultSettings.from_env()

        self.client = hvac.Client(url=self.settings.addr, namespace=self.settings.namespace)
        self._login()

        if not self.client.is_authenticated():
            raise PermissionError("Vault authentication failed")

        logger.info(f"Vault client ready: {self.settings.addr} ({self.settings.prefix}/)")

    def _login(self) -> None:
        try:
            response = self.client.auth.approle.login(
                role_id=self.settings.role_id,
                secret_id=self.settings.secret_id,
            )
        except VaultError as e:
            logger.error(f"AppRole authentication failed: {e}")
            raise PermissionError(f"AppRole authentication failed: {e}") from e
        self.client.token = response["auth"]["client_token"]

    def read(self, path: str) -> Dict[str, str]:
        """
        All fields of the secret at <prefix>/<path>.

        Raises:
            PermissionError: Path missing or not readable with this role
        """
        full_path = f"{self.settings.prefix}/{path}"

        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path,
                mount_point=self.settings.mount_point,
                raise_on_deleted_version=True,
            )
        except InvalidPath as e:
            logger.error(f"Secret path not found: {full_path}")
            raise PermissionError(f"Secret path '{full_path}' not found in Vault") from e
        except (Unauthorized, Forbidden) as e:
            logger.error(f"Access denied to secret {full_path}: {e}")
            raise PermissionError(f"Access denied to secret '{full_path}': {e}") from e

        return response["data"]["data"]

    def get_secret(self, path: str, field: str) -> str:
        """
        One field of the secret at <prefix>/<path>.

        Raises:
            PermissionError: Path missing or not readable
            KeyError: Secret has no such field
        """
        secret = self.read(path)
        if field not in secret:
            raise KeyError(
                f"Field '{field}' not found in secret '{self.settings.prefix}/{path}'. "
                f"Available: {', '.join(secret.keys())}"
            )
        return secret[field]


def _ensure_vault_client() -> VaultClient:
    global _vault_client_instance
    if _vault_client_instance is None:
        _vault_client_instance = VaultClient()
    return _vault_client_instance


def get_cached_secret(path: str, field: str) -> str:
    """Read a secret field once per process."""
    cache_key = f"{path}/{field}"
    if cache_key not in _secret_cache:
        _secret_cache[cache_key] = _ensure_vault_client().get_secret(path, field)
    return _secret_cache[cache_key]


def get_database_url() -> str:
    """
    PostgreSQL connection URL for the invoice database.

    DATABASE_URL in the environment wins (local development and CI);
    otherwise database/url is read from Vault.
    """
    return os.getenv("DATABASE_URL") or get_cached_secret("database", "url")

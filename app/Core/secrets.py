"""Process-lifetime secret resolution.

Secrets live in a single Secrets Manager entry (a JSON object) named by
``SECRETS_ID``. The entry is fetched once per process and cached; lookups fall
back to the environment variable of the same name.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.Core.config import get_settings

logger = logging.getLogger("secrets")


class SecretsProvider:
    def __init__(self) -> None:
        self._cached: Optional[Dict[str, Any]] = None
        self._client = None
        self._lock = asyncio.Lock()

    def _get_client(self):
        if self._client is None:
            self._client = boto3.client("secretsmanager", region_name=get_settings().aws_region)
        return self._client

    def _fetch(self, secret_id: str) -> Optional[Dict[str, Any]]:
        response = self._get_client().get_secret_value(SecretId=secret_id)
        raw = response.get("SecretString")
        if not raw:
            logger.warning("Secret %s found but no SecretString present", secret_id)
            return None
        data = json.loads(raw)
        if not isinstance(data, dict):
            logger.warning("Secret %s is not a JSON object", secret_id)
            return None
        return data

    async def load(self) -> Dict[str, Any]:
        if self._cached is not None:
            return self._cached
        secret_id = get_settings().secrets_id
        if not secret_id:
            logger.warning("SECRETS_ID not configured - secrets will not be loaded from AWS")
            return {}
        async with self._lock:
            if self._cached is not None:
                return self._cached
            loop = asyncio.get_running_loop()
            try:
                data = await loop.run_in_executor(None, self._fetch, secret_id)
            except (BotoCoreError, ClientError, ValueError) as exc:
                # Not cached: the next call retries the fetch
                logger.error("Failed to load secrets from Secrets Manager: %s", exc)
                return {}
            if data is None:
                return {}
            self._cached = data
            logger.info("Loaded secrets from Secrets Manager")
            return data

    async def get(self, key: str) -> Optional[str]:
        secrets = await self.load()
        value = secrets.get(key)
        if value:
            return str(value)
        return os.getenv(key) or None

    def clear(self) -> None:
        self._cached = None
        self._client = None
        self._lock = asyncio.Lock()


secrets_provider = SecretsProvider()


async def get_secret(key: str) -> Optional[str]:
    return await secrets_provider.get(key)


async def is_google_auth_configured() -> bool:
    return bool(await get_secret("GOOGLE_CLIENT_ID"))


def clear_secrets_cache() -> None:
    """Reset the cached secrets (tests only)."""
    secrets_provider.clear()

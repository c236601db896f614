"""
Secrets management for ClearLens.
Resolves credentials for the completion service and the memory store from the
environment, caching what it finds.
"""

import os
import logging
from typing import Optional, Dict
from urllib.parse import urlparse

from clearlens.api_exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1", "0.0.0.0"}


class SecretsManager:
    """Centralized secrets lookup backed by environment variables."""

    def __init__(self):
        self.local_cache: Dict[str, str] = {}
        self.load_from_env()

    def load_from_env(self):
        """Load known secrets from environment variables."""
        known_secrets = [
            "OLLAMA_API_KEY",
            "SUPABASE_URL",
            "SUPABASE_KEY",
        ]

        for secret in known_secrets:
            value = os.environ.get(secret)
            if value:
                self.local_cache[secret] = value
            else:
                logger.debug(f"Secret {secret} not found in environment")

    def get_secret(self, secret_name: str, default: Optional[str] = None) -> Optional[str]:
        """Get secret from local cache or environment.

        Args:
            secret_name: Name of the secret (e.g., 'OLLAMA_API_KEY')
            default: Default value if secret not found

        Returns:
            Secret value or default
        """
        if secret_name in self.local_cache:
            return self.local_cache[secret_name]

        env_value = os.environ.get(secret_name)
        if env_value:
            self.local_cache[secret_name] = env_value
            return env_value

        return default

    def rotate_secret(self, secret_name: str, new_value: str):
        """Replace a cached secret (and the process environment copy)."""
        self.local_cache[secret_name] = new_value
        os.environ[secret_name] = new_value
        logger.info(f"Secret {secret_name} rotated (local only)")


def is_loopback_host(host: str) -> bool:
    parsed = urlparse(host if "://" in host else f"http://{host}")
    return (parsed.hostname or "").lower() in _LOOPBACK_HOSTS


def completion_credentials(host: str, manager: Optional[SecretsManager] = None) -> Optional[str]:
    """Return the bearer key for the completion host.

    A loopback Ollama needs no key. Any remote host does; a missing key there
    raises ConfigurationError.
    """
    if not host:
        raise ConfigurationError("OLLAMA_HOST")
    key = (manager or secrets_manager).get_secret("OLLAMA_API_KEY")
    if key:
        return key
    if is_loopback_host(host):
        return None
    logger.error("Missing OLLAMA_API_KEY for remote completion host")
    raise ConfigurationError("OLLAMA_API_KEY")


# Global secrets manager instance
secrets_manager = SecretsManager()

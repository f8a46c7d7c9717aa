"""Secret Manager Client - Imperative Shell.

Reads secrets (such as the geolocation API token) from Google Cloud
Secret Manager and resolves ${...} placeholders in configuration values.
"""

import logging
import os
from dataclasses import dataclass

from google.cloud import secretmanager


logger = logging.getLogger(__name__)


SECRET_PREFIX = "secret:"


@dataclass
class SecretManagerConfig:
    """Configuration for Secret Manager client.

    Attributes:
        project_id: GCP project ID
    """
    project_id: str | None = None


class SecretManagerClient:
    """Client for reading secrets from Google Cloud Secret Manager.

    This is part of the imperative shell - it handles secret I/O.
    """

    def __init__(self, config: SecretManagerConfig | None = None) -> None:
        self.config = config or SecretManagerConfig()
        self._client: secretmanager.SecretManagerServiceClient | None = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy initialization of Secret Manager client."""
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def get_secret(self, secret_name: str, version: str = "latest") -> str | None:
        """Fetch a secret value.

        This method performs I/O.

        Args:
            secret_name: Name of the secret (not the full resource path)
            version: Version of the secret

        Returns:
            Secret value, or None if it could not be read
        """
        if not self.config.project_id:
            logger.error("No project ID configured for Secret Manager")
            return None

        name = f"projects/{self.config.project_id}/secrets/{secret_name}/versions/{version}"

        try:
            response = self.client.access_secret_version(request={"name": name})
            logger.info("Fetched secret: %s", secret_name)
            return response.payload.data.decode("UTF-8")
        except Exception as e:
            logger.error("Failed to fetch secret %s: %s", secret_name, str(e))
            return None

    def resolve(self, value: str) -> str:
        """Resolve a ${secret:name} or ${ENV_VAR} placeholder.

        Values without a placeholder, and placeholders that cannot be
        resolved, are returned unchanged.
        """
        if not (value.startswith("${") and value.endswith("}")):
            return value

        spec = value[2:-1]
        if spec.startswith(SECRET_PREFIX):
            secret = self.get_secret(spec[len(SECRET_PREFIX):])
            return secret if secret is not None else value

        env_value = os.environ.get(spec)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", spec)
        return value

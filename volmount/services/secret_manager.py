"""Secret resolution for volume credentials"""

import asyncio
import json
import os
from typing import Dict, Optional

import requests

from volmount.utils.exceptions import SecretResolutionException
from volmount.utils.logger import get_logger

LOG = get_logger(__name__)

ENV_PREFIX = 'env:'
FILE_PREFIX = 'file:'
HTTP_PREFIXES = ('http://', 'https://')

# Keys looked up, in order, when a secret payload is a JSON document
PAYLOAD_KEYS = ('password', 'value', 'secret', 'private_key')


class SecretResolver:
    """
    Resolves credential references to plaintext at the moment of use.

    Supported references:
        env:NAME                  environment variable
        file:/path/to/secret      file contents (trailing newline stripped)
        https://host/v1/secrets/  Barbican-style secret href (payload endpoint)
        anything else             returned unchanged (plaintext value)

    Resolved values are returned to the caller only; nothing is cached or
    written anywhere.
    """

    def __init__(self, config: Dict = None):
        """
        Initialize SecretResolver.

        Args:
            config: Optional configuration dictionary containing:
                - verify_ssl: SSL verification for secret hrefs (default: True)
                - auth_token: Token sent as X-Auth-Token for secret hrefs
                - request_timeout: HTTP timeout in seconds (default: 10)
        """
        self.config = config or {}
        self.verify_ssl = self.config.get('verify_ssl', True)
        self.auth_token = self.config.get('auth_token')
        self.request_timeout = self.config.get('request_timeout', 10)

    @staticmethod
    def is_reference(value: Optional[str]) -> bool:
        if not value:
            return False
        return value.startswith((ENV_PREFIX, FILE_PREFIX) + HTTP_PREFIXES)

    async def resolve_secret(self, ref: Optional[str]) -> Optional[str]:
        """
        Resolve a credential reference.

        Args:
            ref: Reference or plaintext value (None passes through)

        Returns:
            Plaintext value

        Raises:
            SecretResolutionException: If the reference cannot be resolved
        """
        if ref is None or not self.is_reference(ref):
            return ref

        if ref.startswith(ENV_PREFIX):
            name = ref[len(ENV_PREFIX):]
            value = os.environ.get(name)
            if value is None:
                raise SecretResolutionException(f"Environment variable {name} is not set")
            return value

        if ref.startswith(FILE_PREFIX):
            return await asyncio.to_thread(self._read_file, ref[len(FILE_PREFIX):])

        return await asyncio.to_thread(self._fetch_secret_href, ref)

    @staticmethod
    def _read_file(path: str) -> str:
        try:
            with open(path, 'r') as f:
                return f.read().rstrip('\n')
        except OSError as e:
            raise SecretResolutionException(f"Cannot read secret file {path}: {e.strerror}")

    def _fetch_secret_href(self, secret_ref: str) -> str:
        """
        Retrieve a secret payload from a Barbican-style secret href.

        Args:
            secret_ref: Full URL to the secret (e.g. 'https://host:9311/v1/secrets/uuid')

        Returns:
            Secret payload as text. JSON payloads are unwrapped using PAYLOAD_KEYS.
        """
        headers = {'Accept': 'text/plain'}
        if self.auth_token:
            headers['X-Auth-Token'] = self.auth_token

        payload_url = f"{secret_ref.rstrip('/')}/payload"
        LOG.debug(f"Fetching secret payload from: {payload_url}")

        try:
            response = requests.get(
                payload_url,
                headers=headers,
                verify=self.verify_ssl,
                timeout=self.request_timeout
            )
        except requests.exceptions.Timeout:
            raise SecretResolutionException(f"Timeout retrieving secret {secret_ref}")
        except requests.exceptions.RequestException as e:
            raise SecretResolutionException(
                f"Request error retrieving secret {secret_ref}: {e.__class__.__name__}"
            )

        # Handle common errors
        if response.status_code == 401:
            raise SecretResolutionException("Invalid or expired token for secret retrieval")
        elif response.status_code == 403:
            raise SecretResolutionException(f"Access denied to secret {secret_ref}")
        elif response.status_code == 404:
            raise SecretResolutionException(f"Secret not found at {secret_ref}")
        elif response.status_code >= 400:
            raise SecretResolutionException(
                f"HTTP error {response.status_code} retrieving secret {secret_ref}"
            )

        payload_text = response.text
        if not payload_text or not payload_text.strip():
            raise SecretResolutionException("Secret payload is empty")

        if payload_text.lstrip().startswith('{'):
            try:
                payload = json.loads(payload_text)
            except json.JSONDecodeError:
                LOG.warning("Secret payload looks like JSON but does not parse, using raw payload")
                return payload_text
            for key in PAYLOAD_KEYS:
                if isinstance(payload.get(key), str):
                    return payload[key]
            raise SecretResolutionException(
                f"Secret payload has none of the keys: {', '.join(PAYLOAD_KEYS)}"
            )

        return payload_text

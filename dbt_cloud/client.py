import json
import logging
import pprint
from typing import Optional

import requests
import voluptuous as vol

from dbt_cloud import __version__
from dbt_cloud.constants import DEFAULT_HOST_URL, DEFAULT_TIMEOUT
from dbt_cloud.credentials.client_credentials import ClientCredentials
from dbt_cloud.errors import DecodeError, TransportError
from dbt_cloud.schemas import CLIENT_SCHEMA
from dbt_cloud.util import mask, redact

logger = logging.getLogger(__name__)

SUCCESS_STATUS_CODES = {200, 201}


def decode_body(body: bytes, schema: vol.Schema) -> dict:
    """Unmarshals a raw response body and validates it against a response schema

    Args:
        body: raw bytes as returned by `Client.do_request`
        schema: the voluptuous schema of the expected envelope

    Returns:
        The validated response, with defaults filled in for absent members

    Raises:
        DecodeError
    """
    try:
        payload = json.loads(body)
    except ValueError as e:
        logger.error(f"Response body is not valid JSON: {e}")
        raise DecodeError(f"Response body is not valid JSON: {e}") from e

    try:
        return schema(payload)
    except (vol.MultipleInvalid, vol.Invalid) as e:
        logger.error(e)
        logger.error(pprint.pformat(redact(payload)))
        raise DecodeError(f"Response does not match the expected envelope: {e}") from e


class Client(object):
    """Connection to a single dbt Cloud account.

    Holds the base url, the account every resource path is scoped to and the API token. The
    configuration is fixed at construction; resource bindings such as
    `DatabricksCredentialApi` take a client and share its session.
    """

    def __init__(
        self,
        account_id: int,
        token: str,
        host_url: str = DEFAULT_HOST_URL,
        timeout: int = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.account_id = account_id
        self.token = token
        self.host_url = host_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @staticmethod
    def from_config(config: dict) -> "Client":
        """Validates a client configuration and builds a client from it

        Args:
            config: dictionary with `account_id`, `token` and optionally `host_url` and `timeout`

        Returns:
            A configured client

        Raises:
            MultipleInvalid
            Invalid
        """
        try:
            validated = CLIENT_SCHEMA(config)
        except (vol.MultipleInvalid, vol.Invalid) as e:
            logger.error(e)
            logger.error(pprint.pformat({**config, "token": mask(config.get("token", ""))}))
            raise e
        return Client(**validated)

    @staticmethod
    def from_environment(config: Optional[dict] = None) -> "Client":
        """Builds a client from the config file in `.dbt_cloud/` and `DBT_CLOUD_*` environment variables

        Args:
            config: configuration to use instead of reading `.dbt_cloud/config.yml`

        Returns:
            A configured client
        """
        if config is None:
            config = ClientCredentials.load_config_file()
        return Client.from_config(ClientCredentials(config).credentials())

    def account_url(self, path: str) -> str:
        return f"{self.host_url}/v3/accounts/{self.account_id}/{path}"

    def _headers(self) -> dict:
        return {
            "Authorization": f"Token {self.token}",
            "Content-Type": "application/json",
            "User-Agent": f"dbt-cloud-client/{__version__}",
        }

    def do_request(self, method: str, url: str, data: Optional[str] = None) -> bytes:
        """Executes a single request against the API

        Args:
            method: HTTP verb
            url: absolute url, including any query string
            data: serialized JSON body

        Returns:
            bytes: the raw response body

        Raises:
            TransportError: the request failed or the status code is not 200/201
        """
        logger.info(f"{method} {url}")
        try:
            response = self.session.request(
                method, url, data=data, headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TransportError(f"{method} {url} failed: {e}", url=url) from e

        if response.status_code not in SUCCESS_STATUS_CODES:
            logger.error(f"{method} {url} returned {response.status_code}")
            raise TransportError(
                f"{method} {url} returned {response.status_code}",
                url=url,
                status_code=response.status_code,
                body=response.content,
            )
        return response.content

    def __repr__(self):
        return f"Client(host_url='{self.host_url}', account_id={self.account_id}, token='{mask(self.token)}')"

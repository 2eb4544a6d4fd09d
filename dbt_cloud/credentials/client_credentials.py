"""
Example:

    In `.dbt_cloud/config.yml`::

        host_url: https://emea.dbt.com/api
        environment_keys:
            token: MY_DBT_TOKEN

With `MY_DBT_TOKEN` and `DBT_CLOUD_ACCOUNT_ID` exported, this resolves to a complete client
configuration. Environment variables win over values written in the file.
"""
import logging
import pprint

import voluptuous as vol

from dbt_cloud.credentials.environment_credentials_provider import EnvironmentCredentialsProvider
from dbt_cloud.schemas import CONFIG_FILE_SCHEMA
from dbt_cloud.util import get_full_yaml_filename, load_yaml

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT_KEYS = {
    "host_url": "DBT_CLOUD_HOST_URL",
    "account_id": "DBT_CLOUD_ACCOUNT_ID",
    "token": "DBT_CLOUD_TOKEN",
}

CLIENT_SETTINGS = ("host_url", "account_id", "token", "timeout")


class ClientCredentials(object):
    """Resolves the settings a `Client` needs from a config file and the environment"""

    def __init__(self, config: dict):
        self.config = self.validate(config)
        self.provider = EnvironmentCredentialsProvider(self.config)

    @staticmethod
    def validate(config: dict) -> dict:
        try:
            return CONFIG_FILE_SCHEMA(config)
        except (vol.MultipleInvalid, vol.Invalid) as e:
            logger.error(e)
            logger.error(pprint.pformat({k: v for k, v in config.items() if k != "token"}))
            raise e

    @staticmethod
    def load_config_file(filename: str = "config") -> dict:
        try:
            path = get_full_yaml_filename(filename)
        except FileNotFoundError:
            logger.info("No config file found, reading settings from the environment only")
            return {}
        logger.info(f"Reading settings from {path}")
        return load_yaml(path)

    def environment_keys(self) -> dict:
        return {**DEFAULT_ENVIRONMENT_KEYS, **self.config.get("environment_keys", {})}

    def credentials(self) -> dict:
        """Merges the settings from the config file with the ones found in the environment

        Returns:
            A mapping of client setting to value, ready for `Client.from_config`
        """
        from_file = {k: v for k, v in self.config.items() if k in CLIENT_SETTINGS}
        from_environment = self.provider.get_credentials(self.environment_keys())
        return {**from_file, **from_environment}

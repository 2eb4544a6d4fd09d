import logging
import os
from typing import Dict, List, Union

from dbt_cloud.credentials.credential_provider import BaseProvider
from dbt_cloud.util import inverse_dictionary

logger = logging.getLogger(__name__)


class EnvironmentCredentialsMixin(object):
    def _transform_environment_key_to_credential_kwargs(self, keys: Dict[str, str]) -> Dict[str, str]:
        """Transforms a mapping of name to environment variable to a mapping of name to value

        Variables that are not set are left out of the result.

        Example:

            keys::

                { "account_id": "DBT_CLOUD_ACCOUNT_ID", "token": "DBT_CLOUD_TOKEN" }

            where environment variables `DBT_CLOUD_ACCOUNT_ID=1` and `DBT_CLOUD_TOKEN=dbtc_abc`
            will return a dictionary::

                { "account_id": "1", "token": "dbtc_abc" }


        Args:
            keys: A dictionary containing the mapping of name to environment variable

        Returns:
            A mapping of name to environment variable value
        """
        credentials: Dict[str, str] = self._read_os_variables(list(keys.values()))
        credential_kwargs = {
            function_arg: credentials[os_variable]
            for os_variable, function_arg in inverse_dictionary(keys).items()
            if os_variable in credentials
        }
        return credential_kwargs

    def _read_os_variables(self, environment_keys: List[str]) -> Dict[str, str]:
        """
        Example:
           environment_keys: `["DBT_CLOUD_ACCOUNT_ID", "DBT_CLOUD_HOST_URL"]`

           where only `DBT_CLOUD_ACCOUNT_ID=1` is set returns::

               { "DBT_CLOUD_ACCOUNT_ID": "1" }


        Args:
            environment_keys (List[str]): A list containing the environment keys to search for in os.environ

        Returns:
            Dict[str: str]: A dictionary of the variables that are set, indexed on the key
        """
        return {key: os.environ[key] for key in environment_keys if key in os.environ}


class EnvironmentCredentialsProvider(BaseProvider, EnvironmentCredentialsMixin):
    def get_credentials(self, lookup: Union[str, Dict[str, str]]):
        if not isinstance(lookup, dict):
            raise ValueError("Please provide a dictionary")
        credential_kwargs = self._transform_environment_key_to_credential_kwargs(lookup)
        logger.info(f"Read {sorted(credential_kwargs)} from the environment")
        return credential_kwargs

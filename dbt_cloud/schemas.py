import voluptuous as vol

from dbt_cloud.constants import DEFAULT_HOST_URL, DEFAULT_TIMEOUT


def null_as_empty(value):
    """JSON `null` for a nested object decodes to an empty object"""
    return {} if value is None else value


def strict_int(value) -> int:
    """An integer that is not a boolean, `int` alone lets JSON `true`/`false` through"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise vol.Invalid(f"expected int, got {type(value).__name__}")
    return value


def nullable(validator, zero):
    """Accepts JSON `null` where `validator` is expected and replaces it with `zero`"""
    return vol.All(vol.Any(None, validator), lambda value: zero if value is None else value)


def strip_trailing_slash(value: str) -> str:
    return value.rstrip("/")


CLIENT_SCHEMA = vol.Schema(
    {
        vol.Optional(
            "host_url",
            default=DEFAULT_HOST_URL,
            description="Base url of the dbt Cloud API, without the version segment",
        ): vol.All(str, vol.Url(), strip_trailing_slash),
        vol.Required("account_id", description="Numeric id of the dbt Cloud account"): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Required("token", description="Service or personal API token"): vol.All(str, vol.Length(min=1)),
        vol.Optional("timeout", default=DEFAULT_TIMEOUT, description="Request timeout in seconds"): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
    },
    extra=vol.REMOVE_EXTRA,
)

ENVIRONMENT_KEYS_SCHEMA = vol.Schema(
    {
        vol.Optional("host_url"): str,
        vol.Optional("account_id"): str,
        vol.Optional("token"): str,
    }
)

CONFIG_FILE_SCHEMA = vol.Schema(
    {
        vol.Optional("host_url"): str,
        vol.Optional("account_id"): vol.Coerce(int),
        vol.Optional("token"): str,
        vol.Optional("timeout"): vol.Coerce(int),
        vol.Optional(
            "environment_keys",
            description="Mapping of client setting to the environment variable holding its value",
        ): ENVIRONMENT_KEYS_SCHEMA,
    },
    extra=vol.ALLOW_EXTRA,
)

RESPONSE_STATUS_SCHEMA = vol.Schema(
    {
        vol.Optional("code", default=0): nullable(strict_int, 0),
        vol.Optional("is_success", default=False): nullable(bool, False),
        vol.Optional("user_message", default=""): nullable(str, ""),
        vol.Optional("developer_message", default=""): nullable(str, ""),
    },
    extra=vol.ALLOW_EXTRA,
)


def envelope(data_schema) -> vol.Schema:
    """Wraps a schema for the `data` member in the `{data, status}` envelope every response shares

    Args:
        data_schema: schema the `data` member must satisfy

    Returns:
        The schema for the complete response body
    """
    return vol.Schema(
        {
            vol.Required("data"): data_schema,
            vol.Optional("status", default={}): vol.All(null_as_empty, RESPONSE_STATUS_SCHEMA),
        },
        extra=vol.ALLOW_EXTRA,
    )

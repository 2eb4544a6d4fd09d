import logging
import os

import yaml

from dbt_cloud.constants import DEFAULT_CONFIG_DIRECTORY

logger = logging.getLogger(__name__)


def load_yaml(path: str) -> dict:
    with open(path, "r") as f:
        config = yaml.safe_load(f)
    return {} if not config else config


def inverse_dictionary(d: dict):
    return {v: k for k, v in d.items()}


def get_full_yaml_filename(filename: str, directory: str = DEFAULT_CONFIG_DIRECTORY) -> str:
    extensions = (".yaml", ".yml")
    for ext in extensions:
        concat_filename = os.path.join(directory, f"{filename}{ext}")
        if os.path.isfile(concat_filename):
            return concat_filename
        else:
            logger.info(f"Could not find file: {concat_filename}")
    raise FileNotFoundError(f"Could not find any valid file for base_filename: {filename}")


def mask(value: str) -> str:
    """Hides a secret value when it ends up in a repr or a log line

    Args:
        value: the secret to hide

    Returns:
        str: `*****` for a non-empty value, an empty string otherwise
    """
    return "*****" if value else ""


def redact(payload):
    """Masks tokens and encrypted field values in a decoded response before it is logged

    Every `token` member is masked, as is the `value` of any object whose `metadata` has
    `encrypt` set.

    Args:
        payload: decoded JSON

    Returns:
        A copy of the payload that is safe to log
    """
    if isinstance(payload, list):
        return [redact(_) for _ in payload]
    if not isinstance(payload, dict):
        return payload

    metadata = payload.get("metadata")
    encrypted = isinstance(metadata, dict) and metadata.get("encrypt") is True
    redacted = {}
    for k, v in payload.items():
        if k == "token" and isinstance(v, str):
            redacted[k] = mask(v)
        elif k == "value" and encrypted:
            redacted[k] = mask(v) if isinstance(v, str) else "*****"
        else:
            redacted[k] = redact(v)
    return redacted

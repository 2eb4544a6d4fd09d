import copy

TOKEN_FIELD = {
    "metadata": {
        "label": "Token",
        "description": "Personalized user token.",
        "field_type": "text",
        "encrypt": True,
        "overrideable": False,
        "validation": {"required": False},
    },
    "value": "**********",
}

SCHEMA_FIELD = {
    "metadata": {
        "label": "Schema",
        "description": "User schema.",
        "field_type": "text",
        "encrypt": False,
        "overrideable": False,
        "validation": {"required": False},
    },
    "value": "dbt_alice",
}

THREADS_FIELD = {
    "metadata": {
        "label": "Threads",
        "description": "The number of threads to use for your jobs.",
        "field_type": "number",
        "encrypt": False,
        "overrideable": False,
        "validation": {"required": False},
    },
    "value": "6",
}

CREDENTIAL = {
    "id": 42,
    "account_id": 1,
    "project_id": 12,
    "type": "adapter",
    "state": 1,
    "threads": 6,
    "target_name": "default",
    "adapter_id": 34,
    "credential_details": {
        "fields": {"token": TOKEN_FIELD, "schema": SCHEMA_FIELD, "threads": THREADS_FIELD},
        "field_order": ["token", "schema", "threads"],
    },
    "unencrypted_credential_details": {
        "catalog": None,
        "schema": "dbt_alice",
        "target_name": "default",
        "threads": 6,
    },
    "adapter": {"id": 34, "adapter_version": "spark_v0"},
    "created_at": "2023-06-01 12:00:00.000000+00:00",
}

STATUS = {"code": 200, "is_success": True, "user_message": "Success!", "developer_message": ""}


def credential_response(**overrides) -> dict:
    return {"data": {**copy.deepcopy(CREDENTIAL), **overrides}, "status": dict(STATUS)}


def client_config() -> dict:
    return {"account_id": 1, "token": "dbtc_secret", "host_url": "https://cloud.getdbt.com/api"}

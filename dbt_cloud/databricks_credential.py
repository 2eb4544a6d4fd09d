import json
import logging
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Dict, List, Optional, Union

import voluptuous as vol

from dbt_cloud.client import Client, decode_body
from dbt_cloud.constants import NUM_THREADS_CREDENTIAL, STATE_ACTIVE
from dbt_cloud.response_status import ResponseStatus
from dbt_cloud.schemas import envelope, null_as_empty, nullable, strict_int
from dbt_cloud.util import mask

logger = logging.getLogger(__name__)

FieldValue = Union[str, int, None]


@unique
class FieldType(Enum):
    TEXT = "text"
    NUMBER = "number"

    def coerce(self, value) -> FieldValue:
        """Narrows an untyped JSON value to the type this field type holds

        Args:
            value: the raw `value` of a credential field

        Returns:
            `str` for text fields, `int` for number fields, None when no value is set

        Raises:
            ValueError: the value cannot represent this field type
        """
        if value is None:
            return None
        if isinstance(value, bool) or isinstance(value, (dict, list)):
            raise ValueError(f"Invalid {self.value} value of type {type(value).__name__}")
        if self is FieldType.NUMBER:
            if isinstance(value, float) and not value.is_integer():
                raise ValueError("Invalid number value, not an integer")
            return int(value)
        return value if isinstance(value, str) else str(value)


def coerce_field_value(credential_field: dict) -> dict:
    """Applies `FieldType.coerce` to a decoded field, fields with an unknown type keep their raw value"""
    try:
        field_type = FieldType(credential_field["metadata"]["field_type"])
    except ValueError:
        return credential_field
    try:
        return {**credential_field, "value": field_type.coerce(credential_field["value"])}
    except ValueError as e:
        raise vol.Invalid(str(e), path=["value"]) from e


VALIDATION_SCHEMA = vol.Schema(
    {vol.Optional("required", default=False): nullable(bool, False)}, extra=vol.ALLOW_EXTRA
)

FIELD_METADATA_SCHEMA = vol.Schema(
    {
        vol.Optional("label", default=""): nullable(str, ""),
        vol.Optional("description", default=""): nullable(str, ""),
        vol.Optional("field_type", default=""): nullable(str, ""),
        vol.Optional("encrypt", default=False): nullable(bool, False),
        vol.Optional("overrideable", default=False): nullable(bool, False),
        vol.Optional("validation", default={}): vol.All(null_as_empty, VALIDATION_SCHEMA),
    },
    extra=vol.ALLOW_EXTRA,
)

FIELD_SCHEMA = vol.All(
    vol.Schema(
        {
            vol.Optional("metadata", default={}): vol.All(null_as_empty, FIELD_METADATA_SCHEMA),
            vol.Optional("value", default=None): object,
        },
        extra=vol.ALLOW_EXTRA,
    ),
    coerce_field_value,
)

CREDENTIAL_DETAILS_SCHEMA = vol.Schema(
    {
        vol.Optional("fields", default={}): nullable({str: vol.All(null_as_empty, FIELD_SCHEMA)}, {}),
        vol.Optional("field_order", default=[]): nullable([str], []),
    },
    extra=vol.ALLOW_EXTRA,
)

UNENCRYPTED_CREDENTIAL_DETAILS_SCHEMA = vol.Schema(
    {
        vol.Optional("catalog", default=""): nullable(str, ""),
        vol.Optional("schema", default=""): nullable(str, ""),
        vol.Optional("target_name", default=""): nullable(str, ""),
        vol.Optional("threads", default=0): nullable(strict_int, 0),
        vol.Optional("token", default=""): nullable(str, ""),
    },
    extra=vol.ALLOW_EXTRA,
)

CREDENTIAL_SCHEMA = vol.Schema(
    {
        vol.Optional("id", default=None): vol.Any(None, strict_int),
        vol.Optional("account_id", default=0): nullable(strict_int, 0),
        vol.Optional("project_id", default=0): nullable(strict_int, 0),
        vol.Optional("type", default=""): nullable(str, ""),
        vol.Optional("state", default=0): nullable(strict_int, 0),
        vol.Optional("threads", default=0): nullable(strict_int, 0),
        vol.Optional("target_name", default=""): nullable(str, ""),
        vol.Optional("adapter_id", default=0): nullable(strict_int, 0),
        vol.Optional("credential_details", default={}): vol.All(null_as_empty, CREDENTIAL_DETAILS_SCHEMA),
        vol.Optional("unencrypted_credential_details", default={}): vol.All(
            null_as_empty, UNENCRYPTED_CREDENTIAL_DETAILS_SCHEMA
        ),
    },
    extra=vol.ALLOW_EXTRA,
)

CREDENTIAL_RESPONSE_SCHEMA = envelope(vol.All(null_as_empty, CREDENTIAL_SCHEMA))
CREDENTIAL_LIST_RESPONSE_SCHEMA = envelope(nullable([vol.All(null_as_empty, CREDENTIAL_SCHEMA)], []))


@dataclass(frozen=True)
class DatabricksCredentialFieldMetadataValidation(object):
    required: bool = False

    @staticmethod
    def from_dict(validation: dict) -> "DatabricksCredentialFieldMetadataValidation":
        return DatabricksCredentialFieldMetadataValidation(required=validation["required"])

    def to_dict(self) -> dict:
        return {"required": self.required}


@dataclass(frozen=True)
class DatabricksCredentialFieldMetadata(object):
    label: str = ""
    description: str = ""
    field_type: str = ""
    encrypt: bool = False
    overrideable: bool = False
    validation: DatabricksCredentialFieldMetadataValidation = field(
        default_factory=DatabricksCredentialFieldMetadataValidation
    )

    @staticmethod
    def from_dict(metadata: dict) -> "DatabricksCredentialFieldMetadata":
        return DatabricksCredentialFieldMetadata(
            label=metadata["label"],
            description=metadata["description"],
            field_type=metadata["field_type"],
            encrypt=metadata["encrypt"],
            overrideable=metadata["overrideable"],
            validation=DatabricksCredentialFieldMetadataValidation.from_dict(metadata["validation"]),
        )

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "description": self.description,
            "field_type": self.field_type,
            "encrypt": self.encrypt,
            "overrideable": self.overrideable,
            "validation": self.validation.to_dict(),
        }


@dataclass(frozen=True)
class DatabricksCredentialField(object):
    """A single settable value of a credential and the metadata the API renders it with.

    `value` holds a `str` for text fields and an `int` for number fields such as `threads`.
    """

    metadata: DatabricksCredentialFieldMetadata = field(default_factory=DatabricksCredentialFieldMetadata)
    value: FieldValue = None

    def __post_init__(self):
        field_type = self.field_type
        if field_type is not None:
            object.__setattr__(self, "value", field_type.coerce(self.value))

    @property
    def field_type(self) -> Optional[FieldType]:
        try:
            return FieldType(self.metadata.field_type)
        except ValueError:
            return None

    @staticmethod
    def from_dict(credential_field: dict) -> "DatabricksCredentialField":
        return DatabricksCredentialField(
            metadata=DatabricksCredentialFieldMetadata.from_dict(credential_field["metadata"]),
            value=credential_field["value"],
        )

    def to_dict(self) -> dict:
        return {"metadata": self.metadata.to_dict(), "value": self.value}

    def __repr__(self):
        value = mask(self.value) if self.metadata.encrypt else repr(self.value)
        return f"DatabricksCredentialField(label='{self.metadata.label}', value={value})"


@dataclass(frozen=True)
class DatabricksCredentialDetails(object):
    fields: Dict[str, DatabricksCredentialField] = field(default_factory=dict)
    # display order, not guaranteed to match the keys of `fields`
    field_order: List[str] = field(default_factory=list)

    @staticmethod
    def from_dict(details: dict) -> "DatabricksCredentialDetails":
        return DatabricksCredentialDetails(
            fields={k: DatabricksCredentialField.from_dict(v) for k, v in details["fields"].items()},
            field_order=list(details["field_order"]),
        )

    def to_dict(self) -> dict:
        return {
            "fields": {k: v.to_dict() for k, v in self.fields.items()},
            "field_order": list(self.field_order),
        }


@dataclass(frozen=True)
class DatabricksUnencryptedCredentialDetails(object):
    catalog: str = ""
    schema: str = ""
    target_name: str = ""
    threads: int = 0
    token: str = ""

    @staticmethod
    def from_dict(details: dict) -> "DatabricksUnencryptedCredentialDetails":
        return DatabricksUnencryptedCredentialDetails(
            catalog=details["catalog"],
            schema=details["schema"],
            target_name=details["target_name"],
            threads=details["threads"],
            token=details["token"],
        )

    def to_dict(self) -> dict:
        details = {
            "catalog": self.catalog,
            "schema": self.schema,
            "target_name": self.target_name,
            "threads": self.threads,
        }
        if self.token:
            details["token"] = self.token
        return details

    def __repr__(self):
        return (
            f"DatabricksUnencryptedCredentialDetails(catalog='{self.catalog}', schema='{self.schema}', "
            f"target_name='{self.target_name}', threads={self.threads}, token='{mask(self.token)}')"
        )


@dataclass(frozen=True)
class DatabricksCredential(object):
    id: Optional[int] = None
    account_id: int = 0
    project_id: int = 0
    type: str = ""
    state: int = 0
    threads: int = 0
    target_name: str = ""
    adapter_id: int = 0
    credential_details: DatabricksCredentialDetails = field(default_factory=DatabricksCredentialDetails)
    unencrypted_credential_details: DatabricksUnencryptedCredentialDetails = field(
        default_factory=DatabricksUnencryptedCredentialDetails
    )

    @staticmethod
    def from_dict(credential: dict) -> "DatabricksCredential":
        """Builds a credential from a dictionary validated by `CREDENTIAL_SCHEMA`"""
        return DatabricksCredential(
            id=credential["id"],
            account_id=credential["account_id"],
            project_id=credential["project_id"],
            type=credential["type"],
            state=credential["state"],
            threads=credential["threads"],
            target_name=credential["target_name"],
            adapter_id=credential["adapter_id"],
            credential_details=DatabricksCredentialDetails.from_dict(credential["credential_details"]),
            unencrypted_credential_details=DatabricksUnencryptedCredentialDetails.from_dict(
                credential["unencrypted_credential_details"]
            ),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "project_id": self.project_id,
            "type": self.type,
            "state": self.state,
            "threads": self.threads,
            "target_name": self.target_name,
            "adapter_id": self.adapter_id,
            "credential_details": self.credential_details.to_dict(),
            "unencrypted_credential_details": self.unencrypted_credential_details.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass(frozen=True)
class DatabricksCredentialResponse(object):
    data: DatabricksCredential
    status: ResponseStatus

    @staticmethod
    def from_body(body: bytes) -> "DatabricksCredentialResponse":
        response = decode_body(body, CREDENTIAL_RESPONSE_SCHEMA)
        return DatabricksCredentialResponse(
            data=DatabricksCredential.from_dict(response["data"]),
            status=ResponseStatus.from_dict(response["status"]),
        )


@dataclass(frozen=True)
class DatabricksCredentialListResponse(object):
    data: List[DatabricksCredential]
    status: ResponseStatus

    @staticmethod
    def from_body(body: bytes) -> "DatabricksCredentialListResponse":
        response = decode_body(body, CREDENTIAL_LIST_RESPONSE_SCHEMA)
        return DatabricksCredentialListResponse(
            data=[DatabricksCredential.from_dict(_) for _ in response["data"]],
            status=ResponseStatus.from_dict(response["status"]),
        )


NOT_REQUIRED = DatabricksCredentialFieldMetadataValidation(required=False)

TOKEN_METADATA = DatabricksCredentialFieldMetadata(
    label="Token",
    description="Personalized user token.",
    field_type=FieldType.TEXT.value,
    encrypt=True,
    validation=NOT_REQUIRED,
)
CATALOG_METADATA = DatabricksCredentialFieldMetadata(
    label="Catalog",
    description=(
        "Catalog name if Unity Catalog is enabled in your Databricks workspace.  "
        "Only available in dbt version 1.1 and later."
    ),
    field_type=FieldType.TEXT.value,
    encrypt=False,
    validation=NOT_REQUIRED,
)
SCHEMA_METADATA = DatabricksCredentialFieldMetadata(
    label="Schema",
    description="User schema.",
    field_type=FieldType.TEXT.value,
    encrypt=False,
    validation=NOT_REQUIRED,
)
THREADS_METADATA = DatabricksCredentialFieldMetadata(
    label="Threads",
    description="The number of threads to use for your jobs.",
    field_type=FieldType.NUMBER.value,
    encrypt=False,
    validation=NOT_REQUIRED,
)


def credential_fields(
    adapter_type: str, token: str, catalog: str, schema: str
) -> Dict[str, DatabricksCredentialField]:
    """Selects the credential fields a new credential is created with, based on the adapter type

    - `databricks`: catalog, token and schema. Threads are not sent at creation.
    - `spark`: token, schema and threads. Spark has no catalog.
    - any other adapter type: no fields at all.

    Args:
        adapter_type: type of the adapter the credential targets
        token: personal access token, stored encrypted
        catalog: Unity Catalog name
        schema: user schema

    Returns:
        Mapping of field name to field
    """
    token_field = DatabricksCredentialField(metadata=TOKEN_METADATA, value=token)
    catalog_field = DatabricksCredentialField(metadata=CATALOG_METADATA, value=catalog)
    schema_field = DatabricksCredentialField(metadata=SCHEMA_METADATA, value=schema)
    threads_field = DatabricksCredentialField(metadata=THREADS_METADATA, value=NUM_THREADS_CREDENTIAL)

    if adapter_type == "databricks":
        return {"catalog": catalog_field, "token": token_field, "schema": schema_field}
    elif adapter_type == "spark":
        return {"token": token_field, "schema": schema_field, "threads": threads_field}

    logger.warning(f"Unknown adapter type '{adapter_type}', creating credential without fields")
    return {}


class DatabricksCredentialApi(object):
    """Create, read, update and delete Databricks credentials of a dbt Cloud project.

    Every call is a single blocking request through `Client.do_request`. Transport failures
    raise `TransportError`, bodies that are not the expected envelope raise `DecodeError`.
    Nothing is retried.
    """

    def __init__(self, client: Client):
        self.client = client

    def _credentials_url(self, project_id: int, credential_id: Optional[int] = None) -> str:
        path = f"projects/{project_id}/credentials/"
        if credential_id is not None:
            path = f"{path}{credential_id}/"
        return self.client.account_url(path)

    def get(self, project_id: int, credential_id: int) -> DatabricksCredential:
        # literal brackets, not percent-encoded
        url = f"{self._credentials_url(project_id, credential_id)}?include_related=[adapter]"
        body = self.client.do_request("GET", url)
        return DatabricksCredentialResponse.from_body(body).data

    def list(self, project_id: int) -> List[DatabricksCredential]:
        body = self.client.do_request("GET", self._credentials_url(project_id))
        return DatabricksCredentialListResponse.from_body(body).data

    def create(
        self,
        project_id: int,
        type_: str,
        target_name: str,
        adapter_id: int,
        token: str,
        catalog: str,
        schema: str,
        adapter_type: str,
    ) -> DatabricksCredential:
        """Creates a credential for the adapter of a project

        Args:
            project_id: project the credential belongs to
            type_: credential type, `adapter` for Databricks and Spark credentials
            target_name: dbt target name
            adapter_id: id of the adapter the credential connects with
            token: personal access token
            catalog: Unity Catalog name, only sent for the `databricks` adapter type
            schema: user schema
            adapter_type: `databricks` or `spark`, selects which fields are sent

        Returns:
            The created credential, carrying the id assigned by the server
        """
        new_credential = DatabricksCredential(
            account_id=self.client.account_id,
            project_id=project_id,
            type=type_,
            state=STATE_ACTIVE,
            threads=NUM_THREADS_CREDENTIAL,
            target_name=target_name,
            adapter_id=adapter_id,
            credential_details=DatabricksCredentialDetails(
                fields=credential_fields(adapter_type, token, catalog, schema), field_order=[]
            ),
        )

        body = self.client.do_request("POST", self._credentials_url(project_id), data=new_credential.to_json())
        created = DatabricksCredentialResponse.from_body(body).data
        logger.info(f"Created Databricks credential {created.id} in project {project_id}")
        return created

    def update(
        self, project_id: int, credential_id: int, credential: DatabricksCredential
    ) -> DatabricksCredential:
        """Replaces a credential with the complete object passed in, there is no partial update"""
        body = self.client.do_request(
            "POST", self._credentials_url(project_id, credential_id), data=credential.to_json()
        )
        return DatabricksCredentialResponse.from_body(body).data

    def delete(self, credential_id: int, project_id: int) -> str:
        self.client.do_request("DELETE", self._credentials_url(project_id, credential_id))
        logger.info(f"Deleted Databricks credential {credential_id} in project {project_id}")
        return ""

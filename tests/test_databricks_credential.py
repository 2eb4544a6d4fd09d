import dataclasses
import json
import logging
from unittest import mock

import pytest

from dbt_cloud.client import Client
from dbt_cloud.constants import NUM_THREADS_CREDENTIAL, STATE_ACTIVE
from dbt_cloud.databricks_credential import (
    CREDENTIAL_SCHEMA,
    DatabricksCredential,
    DatabricksCredentialApi,
    DatabricksCredentialDetails,
    DatabricksCredentialField,
    DatabricksCredentialFieldMetadata,
    DatabricksUnencryptedCredentialDetails,
    FieldType,
    SCHEMA_METADATA,
    THREADS_METADATA,
    credential_fields,
)
from dbt_cloud.errors import DecodeError, TransportError
from tests import CREDENTIAL, STATUS, client_config, credential_response

CREDENTIALS_URL = "https://cloud.getdbt.com/api/v3/accounts/1/projects/12/credentials/"


def encode(payload: dict) -> bytes:
    return json.dumps(payload).encode()


@pytest.fixture
def victim():
    client = Client.from_config(client_config())
    client.do_request = mock.MagicMock(return_value=encode(credential_response()))
    return DatabricksCredentialApi(client)


def sent_body(victim) -> dict:
    return json.loads(victim.client.do_request.call_args[1]["data"])


def create(victim, adapter_type: str) -> DatabricksCredential:
    return victim.create(
        project_id=12,
        type_="adapter",
        target_name="default",
        adapter_id=34,
        token="dapi123",
        catalog="main",
        schema="dbt_alice",
        adapter_type=adapter_type,
    )


class TestGet(object):
    def test_get(self, victim):
        credential = victim.get(12, 42)

        victim.client.do_request.assert_called_once_with(
            "GET", f"{CREDENTIALS_URL}42/?include_related=[adapter]"
        )
        assert credential.id == 42
        assert credential.project_id == 12
        assert credential.adapter_id == 34
        assert credential.state == STATE_ACTIVE
        assert credential.credential_details.field_order == ["token", "schema", "threads"]
        assert credential.unencrypted_credential_details.catalog == ""
        assert credential.unencrypted_credential_details.schema == "dbt_alice"

    def test_get_field_values_follow_field_type(self, victim):
        fields = victim.get(12, 42).credential_details.fields

        assert fields["threads"].value == 6
        assert fields["threads"].field_type is FieldType.NUMBER
        assert fields["schema"].value == "dbt_alice"
        assert fields["schema"].field_type is FieldType.TEXT
        assert fields["token"].metadata.encrypt is True

    def test_get_without_id(self, victim):
        body = credential_response()
        del body["data"]["id"]
        victim.client.do_request.return_value = encode(body)

        assert victim.get(12, 42).id is None

    def test_get_missing_members_take_zero_values(self, victim):
        victim.client.do_request.return_value = encode({"data": {"id": 3}, "status": STATUS})

        credential = victim.get(12, 3)

        assert credential == DatabricksCredential(id=3)

    def test_get_invalid_envelope(self, victim):
        victim.client.do_request.return_value = encode(CREDENTIAL)
        with pytest.raises(DecodeError):
            victim.get(12, 42)

    def test_get_invalid_member_type(self, victim):
        victim.client.do_request.return_value = encode(credential_response(project_id="twelve"))
        with pytest.raises(DecodeError):
            victim.get(12, 42)

    def test_get_invalid_number_field(self, victim):
        body = credential_response()
        body["data"]["credential_details"]["fields"]["threads"]["value"] = "many"
        victim.client.do_request.return_value = encode(body)

        with pytest.raises(DecodeError):
            victim.get(12, 42)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"id": True},
            {"threads": False},
            {"unencrypted_credential_details": {"threads": True}},
        ],
    )
    def test_get_boolean_is_not_an_integer(self, victim, overrides):
        victim.client.do_request.return_value = encode(credential_response(**overrides))
        with pytest.raises(DecodeError):
            victim.get(12, 42)

    def test_get_invalid_body_does_not_log_secrets(self, victim, caplog):
        body = credential_response(
            project_id="bad", unencrypted_credential_details={"token": "dapiSECRET"}
        )
        body["data"]["credential_details"]["fields"]["token"]["value"] = "dapiENCRYPTED"
        victim.client.do_request.return_value = encode(body)

        with caplog.at_level(logging.ERROR), pytest.raises(DecodeError):
            victim.get(12, 42)

        assert "project_id" in caplog.text
        assert "dapiSECRET" not in caplog.text
        assert "dapiENCRYPTED" not in caplog.text

    def test_get_transport_error(self, victim):
        victim.client.do_request.side_effect = TransportError("GET returned 404", url=CREDENTIALS_URL, status_code=404)
        with pytest.raises(TransportError):
            victim.get(12, 42)


class TestList(object):
    def test_list(self, victim):
        victim.client.do_request.return_value = encode(
            {"data": [CREDENTIAL, {**CREDENTIAL, "id": 43}], "status": STATUS}
        )

        credentials = victim.list(12)

        victim.client.do_request.assert_called_once_with("GET", CREDENTIALS_URL)
        assert [_.id for _ in credentials] == [42, 43]

    def test_list_empty(self, victim):
        victim.client.do_request.return_value = encode({"data": None, "status": STATUS})
        assert victim.list(12) == []


class TestCreate(object):
    def test_create_databricks(self, victim):
        created = create(victim, "databricks")

        assert victim.client.do_request.call_args[0] == ("POST", CREDENTIALS_URL)
        body = sent_body(victim)
        fields = body["credential_details"]["fields"]
        assert set(fields) == {"catalog", "token", "schema"}
        assert fields["catalog"]["value"] == "main"
        assert fields["token"]["value"] == "dapi123"
        assert fields["token"]["metadata"]["encrypt"] is True
        assert fields["schema"]["metadata"]["encrypt"] is False
        assert created.id == 42

    def test_create_spark(self, victim):
        create(victim, "spark")

        fields = sent_body(victim)["credential_details"]["fields"]
        assert set(fields) == {"token", "schema", "threads"}
        assert fields["threads"]["value"] == NUM_THREADS_CREDENTIAL
        assert fields["threads"]["metadata"]["field_type"] == "number"

    @pytest.mark.parametrize("adapter_type", ["postgres", "Databricks", ""])
    def test_create_unknown_adapter_type(self, victim, adapter_type):
        create(victim, adapter_type)
        assert sent_body(victim)["credential_details"] == {"fields": {}, "field_order": []}

    def test_create_outer_fields(self, victim):
        create(victim, "databricks")

        body = sent_body(victim)
        assert body["id"] is None
        assert body["account_id"] == 1
        assert body["project_id"] == 12
        assert body["type"] == "adapter"
        assert body["state"] == STATE_ACTIVE
        assert body["threads"] == NUM_THREADS_CREDENTIAL
        assert body["target_name"] == "default"
        assert body["adapter_id"] == 34
        assert body["unencrypted_credential_details"] == {
            "catalog": "",
            "schema": "",
            "target_name": "",
            "threads": 0,
        }

    def test_fields_are_not_required(self):
        for credential_field in credential_fields("spark", "t", "c", "s").values():
            assert credential_field.metadata.validation.required is False


class TestUpdate(object):
    def test_update_sends_full_object(self, victim):
        credential = DatabricksCredential(
            id=42,
            account_id=1,
            project_id=12,
            type="adapter",
            state=STATE_ACTIVE,
            threads=8,
            target_name="prod",
            adapter_id=34,
            credential_details=DatabricksCredentialDetails(
                fields=credential_fields("databricks", "dapi123", "main", "dbt_alice"),
                field_order=["catalog", "token", "schema"],
            ),
            unencrypted_credential_details=DatabricksUnencryptedCredentialDetails(
                catalog="main", schema="dbt_alice", target_name="prod", threads=8, token="dapi123"
            ),
        )

        victim.update(12, 42, credential)

        assert victim.client.do_request.call_args[0] == ("POST", f"{CREDENTIALS_URL}42/")
        assert sent_body(victim) == credential.to_dict()
        assert sent_body(victim)["unencrypted_credential_details"]["token"] == "dapi123"

    def test_update_returns_server_credential(self, victim):
        updated = victim.update(12, 42, DatabricksCredential(id=42))
        assert updated.target_name == "default"


class TestDelete(object):
    @pytest.mark.parametrize("body", [b"", b"not json", b'{"data": {"id": 42}}'])
    def test_delete(self, victim, body):
        victim.client.do_request.return_value = body

        assert victim.delete(42, 12) == ""
        victim.client.do_request.assert_called_once_with("DELETE", f"{CREDENTIALS_URL}42/")

    def test_delete_transport_error(self, victim):
        victim.client.do_request.side_effect = TransportError("DELETE returned 500", url=CREDENTIALS_URL, status_code=500)
        with pytest.raises(TransportError):
            victim.delete(42, 12)


class TestMarshalling(object):
    def test_round_trip(self):
        credential = DatabricksCredential.from_dict(CREDENTIAL_SCHEMA(CREDENTIAL))
        assert DatabricksCredential.from_dict(CREDENTIAL_SCHEMA(credential.to_dict())) == credential

    def test_token_omitted_when_empty(self):
        assert "token" not in DatabricksUnencryptedCredentialDetails(schema="foo").to_dict()

    def test_id_serialized_as_null(self):
        assert json.loads(DatabricksCredential().to_json())["id"] is None

    def test_replace_keeps_other_fields(self):
        credential = DatabricksCredential.from_dict(CREDENTIAL_SCHEMA(CREDENTIAL))
        renamed = dataclasses.replace(credential, target_name="prod")

        assert renamed.target_name == "prod"
        assert renamed.credential_details == credential.credential_details

    def test_repr_masks_secrets(self):
        details = DatabricksUnencryptedCredentialDetails(token="dapi123")
        token = credential_fields("databricks", "dapi123", "", "")["token"]

        assert "dapi123" not in repr(details)
        assert "dapi123" not in repr(token)

    def test_unknown_field_type_keeps_raw_value(self):
        credential_field = DatabricksCredentialField(
            metadata=DatabricksCredentialFieldMetadata(field_type="select"), value=["a"]
        )
        raw = {"credential_details": {"fields": {"method": credential_field.to_dict()}}}

        decoded = DatabricksCredential.from_dict(CREDENTIAL_SCHEMA(raw))

        assert decoded.credential_details.fields["method"].value == ["a"]
        assert decoded.credential_details.fields["method"].field_type is None


class TestFieldType(object):
    @pytest.mark.parametrize("value, expected", [(6, 6), ("6", 6), (6.0, 6), (None, None)])
    def test_coerce_number(self, value, expected):
        assert FieldType.NUMBER.coerce(value) == expected

    @pytest.mark.parametrize("value", ["six", 6.5, True, [6], {}])
    def test_coerce_number_invalid(self, value):
        with pytest.raises(ValueError):
            FieldType.NUMBER.coerce(value)

    @pytest.mark.parametrize("value, expected", [("main", "main"), (1, "1"), (None, None)])
    def test_coerce_text(self, value, expected):
        assert FieldType.TEXT.coerce(value) == expected

    def test_field_value_follows_field_type_on_construction(self):
        threads = DatabricksCredentialField(metadata=THREADS_METADATA, value="8")
        schema = DatabricksCredentialField(metadata=SCHEMA_METADATA, value=5)

        assert threads.value == 8
        assert schema.value == "5"

    def test_field_value_invalid_on_construction(self):
        with pytest.raises(ValueError):
            DatabricksCredentialField(metadata=THREADS_METADATA, value="many")

    def test_round_trip_constructed_credential(self):
        credential = DatabricksCredential(
            id=42,
            project_id=12,
            threads=8,
            credential_details=DatabricksCredentialDetails(
                fields={
                    "threads": DatabricksCredentialField(metadata=THREADS_METADATA, value="8"),
                    "schema": DatabricksCredentialField(metadata=SCHEMA_METADATA, value=5),
                },
                field_order=["schema", "threads"],
            ),
        )

        decoded = DatabricksCredential.from_dict(CREDENTIAL_SCHEMA(json.loads(credential.to_json())))

        assert decoded == credential

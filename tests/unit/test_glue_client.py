"""
Unit tests for GlueRegistryClient.

The aiobotocore session is replaced with a fake whose Glue client is an
AsyncMock, so these tests exercise request building and error translation
without AWS.

Tests cover:
- Lazy connection and lifecycle
- Request parameters per operation
- Response translation
- botocore error translation
"""

from unittest.mock import AsyncMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from sdk.glue_serde.config import RegistrySettings
from sdk.glue_serde.registry import glue as glue_module
from sdk.glue_serde.registry.base import (
    RegistryConnectionError,
    RegistryError,
    RegistryThrottledError,
    SchemaAlreadyExistsError,
    SchemaVersionNotFoundError,
)
from sdk.glue_serde.registry.glue import GlueRegistryClient
from sdk.glue_serde.types import Compatibility, DataFormat
from tests.fixtures import REGISTRY_NAME, SCHEMA_ARN, SCHEMA_ID, SCHEMA_NAME, TESTSCHEMA_JSON


class FakeClientContext:
    """Stands in for the context manager returned by session.create_client()."""

    def __init__(self, client):
        self.client = client
        self.exited = False

    async def __aenter__(self):
        return self.client

    async def __aexit__(self, *exc):
        self.exited = True


class FakeSession:
    def __init__(self, client):
        self.client = client
        self.created = []
        self.contexts = []

    def create_client(self, service_name, **kwargs):
        self.created.append((service_name, kwargs))
        ctx = FakeClientContext(self.client)
        self.contexts.append(ctx)
        return ctx


def client_error(code, operation="GetSchemaVersion"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestGlueRegistryClient:
    """Tests for GlueRegistryClient."""

    @pytest.fixture
    def glue(self):
        return AsyncMock()

    @pytest.fixture
    def session(self, glue, monkeypatch):
        session = FakeSession(glue)
        monkeypatch.setattr(glue_module, "get_session", lambda: session)
        return session

    @pytest.fixture
    def settings(self):
        return RegistrySettings(
            registry_name=REGISTRY_NAME,
            region="eu-central-1",
            endpoint_url="http://localhost:4566",
        )

    @pytest.mark.asyncio
    async def test_connects_lazily_once(self, session, glue, settings):
        glue.get_schema_version.return_value = {"SchemaVersionId": SCHEMA_ID}
        client = GlueRegistryClient(settings)
        assert not client.is_connected

        await client.get_schema_version(SCHEMA_ID)
        await client.get_schema_version(SCHEMA_ID)

        assert client.is_connected
        assert len(session.created) == 1
        service, kwargs = session.created[0]
        assert service == "glue"
        assert kwargs["region_name"] == "eu-central-1"
        assert kwargs["endpoint_url"] == "http://localhost:4566"

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, session, settings):
        async with GlueRegistryClient(settings) as client:
            assert client.is_connected

        assert not client.is_connected
        assert session.contexts[0].exited

    @pytest.mark.asyncio
    async def test_get_schema_version(self, session, glue, settings):
        glue.get_schema_version.return_value = {
            "SchemaVersionId": SCHEMA_ID,
            "SchemaDefinition": TESTSCHEMA_JSON,
            "DataFormat": "AVRO",
            "SchemaArn": SCHEMA_ARN,
            "VersionNumber": 1,
            "Status": "AVAILABLE",
        }
        client = GlueRegistryClient(settings)

        version = await client.get_schema_version(SCHEMA_ID)

        glue.get_schema_version.assert_awaited_once_with(SchemaVersionId=SCHEMA_ID)
        assert version.schema_version_id == SCHEMA_ID
        assert version.definition == TESTSCHEMA_JSON
        assert version.schema_name == SCHEMA_NAME
        assert not version.failed

    @pytest.mark.asyncio
    async def test_get_latest_schema_version(self, session, glue, settings):
        glue.get_schema_version.return_value = {"SchemaVersionId": SCHEMA_ID, "Status": "AVAILABLE"}
        client = GlueRegistryClient(settings)

        await client.get_latest_schema_version(REGISTRY_NAME, SCHEMA_NAME)

        glue.get_schema_version.assert_awaited_once_with(
            SchemaId={"RegistryName": REGISTRY_NAME, "SchemaName": SCHEMA_NAME},
            SchemaVersionNumber={"LatestVersion": True},
        )

    @pytest.mark.asyncio
    async def test_create_schema(self, session, glue, settings):
        glue.create_schema.return_value = {
            "SchemaVersionId": SCHEMA_ID,
            "SchemaVersionStatus": "AVAILABLE",
            "LatestSchemaVersion": 1,
        }
        client = GlueRegistryClient(settings)

        result = await client.create_schema(
            REGISTRY_NAME, SCHEMA_NAME, DataFormat.AVRO, Compatibility.BACKWARD, TESTSCHEMA_JSON
        )

        glue.create_schema.assert_awaited_once_with(
            RegistryId={"RegistryName": REGISTRY_NAME},
            SchemaName=SCHEMA_NAME,
            DataFormat="AVRO",
            Compatibility="BACKWARD",
            SchemaDefinition=TESTSCHEMA_JSON,
        )
        assert result.version_id == SCHEMA_ID
        assert result.version_number == 1

    @pytest.mark.asyncio
    async def test_register_schema_version(self, session, glue, settings):
        glue.register_schema_version.return_value = {
            "SchemaVersionId": SCHEMA_ID,
            "VersionNumber": 2,
            "Status": "PENDING",
        }
        client = GlueRegistryClient(settings)

        result = await client.register_schema_version(REGISTRY_NAME, SCHEMA_NAME, TESTSCHEMA_JSON)

        glue.register_schema_version.assert_awaited_once_with(
            SchemaId={"RegistryName": REGISTRY_NAME, "SchemaName": SCHEMA_NAME},
            SchemaDefinition=TESTSCHEMA_JSON,
        )
        assert result.status == "PENDING"
        assert not result.failed

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "code, expected",
        [
            ("EntityNotFoundException", SchemaVersionNotFoundError),
            ("AlreadyExistsException", SchemaAlreadyExistsError),
            ("ThrottlingException", RegistryThrottledError),
            ("AccessDeniedException", RegistryError),
        ],
    )
    async def test_client_error_translation(self, session, glue, settings, code, expected):
        glue.get_schema_version.side_effect = client_error(code)
        client = GlueRegistryClient(settings)

        with pytest.raises(expected) as exc_info:
            await client.get_schema_version(SCHEMA_ID)

        assert isinstance(exc_info.value.__cause__, ClientError)

    @pytest.mark.asyncio
    async def test_endpoint_unreachable(self, session, glue, settings):
        glue.get_schema_version.side_effect = EndpointConnectionError(
            endpoint_url="http://localhost:4566"
        )
        client = GlueRegistryClient(settings)

        with pytest.raises(RegistryConnectionError):
            await client.get_schema_version(SCHEMA_ID)

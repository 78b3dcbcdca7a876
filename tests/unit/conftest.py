"""
Unit test fixtures for the Glue schema registry codec.
"""

import pytest

from sdk.glue_serde.codec import GlueSchemaRegistry
from sdk.glue_serde.config import RegistrySettings
from sdk.glue_serde.registry.memory import InMemoryRegistryClient
from tests.fixtures import (
    MISSING_SCHEMA_ID,
    REGISTRY_NAME,
    SCHEMA_ID,
    SCHEMA_NAME,
    TESTSCHEMA_JSON,
)


@pytest.fixture
def client():
    """In-memory registry seeded with Testschema under its well-known id."""
    client = InMemoryRegistryClient()
    client.add_version(REGISTRY_NAME, SCHEMA_NAME, TESTSCHEMA_JSON, schema_version_id=SCHEMA_ID)
    client.failing_ids.add(MISSING_SCHEMA_ID)
    return client


@pytest.fixture
def settings():
    return RegistrySettings(registry_name=REGISTRY_NAME, region="eu-central-1")


@pytest.fixture
def registry(client, settings):
    """Codec bound to the seeded in-memory registry."""
    return GlueSchemaRegistry(REGISTRY_NAME, settings, client=client)

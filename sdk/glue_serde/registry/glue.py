"""
AWS Glue Schema Registry client.

This module provides the production RegistryClient backed by the AWS Glue
API. It uses aiobotocore for async operations.

Invariants:
    - The botocore client is created lazily, once, on first use
    - Timeouts and retries are delegated to botocore (see RegistrySettings)
    - Glue error codes are translated to RegistryError subclasses

How to change safely:
    - Test with LocalStack before deploying to AWS
    - Keep response translation in _to_schema_version
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from aiobotocore.session import get_session
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError

from ..config import RegistrySettings
from ..types import Compatibility, DataFormat, RegistrationResult, SchemaVersion
from .base import (
    RegistryConnectionError,
    RegistryError,
    RegistryThrottledError,
    SchemaAlreadyExistsError,
    SchemaVersionNotFoundError,
)

logger = logging.getLogger(__name__)

_THROTTLING_CODES = {
    "ThrottlingException",
    "TooManyRequestsException",
    "ResourceNumberLimitExceededException",
}


class GlueRegistryClient:
    """Glue implementation of the RegistryClient protocol.

    Attributes:
        settings: Registry settings (transport part)

    Example:
        >>> settings = RegistrySettings(registry_name="events", region="eu-central-1")
        >>> async with GlueRegistryClient(settings) as client:
        ...     version = await client.get_schema_version(schema_id)
    """

    def __init__(self, settings: Optional[RegistrySettings] = None) -> None:
        """Initialize Glue registry client.

        Args:
            settings: RegistrySettings instance (loaded from env if not provided)
        """
        self.settings = settings or RegistrySettings()
        self._session = None
        self._client_ctx = None
        self._client = None
        self._connect_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        """Whether the botocore client has been created."""
        return self._client is not None

    async def __aenter__(self) -> GlueRegistryClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def connect(self) -> None:
        """Create the Glue client.

        Raises:
            RegistryConnectionError: If the client cannot be created
        """
        async with self._connect_lock:
            if self._client is not None:
                return

            try:
                self._session = get_session()
                self._client_ctx = self._session.create_client(
                    "glue", **self.settings.client_kwargs()
                )
                self._client = await self._client_ctx.__aenter__()
            except (BotoCoreError, ClientError) as e:
                self._client_ctx = None
                raise RegistryConnectionError(f"Failed to create Glue client: {e}") from e

            logger.info("Connected to Glue schema registry", extra=self.settings.log_fields())

    async def close(self) -> None:
        """Close the Glue client."""
        if self._client is not None:
            try:
                await self._client_ctx.__aexit__(None, None, None)
            except Exception as e:
                logger.warning(f"Error closing Glue client: {e}")

        self._client = None
        self._client_ctx = None
        self._session = None
        logger.info("Glue schema registry client closed")

    async def create_schema(
        self,
        registry_name: str,
        schema_name: str,
        data_format: DataFormat,
        compatibility: Compatibility,
        definition: str,
    ) -> RegistrationResult:
        response = await self._call(
            "create_schema",
            RegistryId={"RegistryName": registry_name},
            SchemaName=schema_name,
            DataFormat=DataFormat(data_format).value,
            Compatibility=Compatibility(compatibility).value,
            SchemaDefinition=definition,
        )
        return RegistrationResult(
            version_id=response.get("SchemaVersionId"),
            status=response.get("SchemaVersionStatus"),
            version_number=response.get("LatestSchemaVersion"),
        )

    async def register_schema_version(
        self,
        registry_name: str,
        schema_name: str,
        definition: str,
    ) -> RegistrationResult:
        response = await self._call(
            "register_schema_version",
            SchemaId={"RegistryName": registry_name, "SchemaName": schema_name},
            SchemaDefinition=definition,
        )
        return RegistrationResult(
            version_id=response.get("SchemaVersionId"),
            status=response.get("Status"),
            version_number=response.get("VersionNumber"),
        )

    async def get_schema_version(self, schema_version_id: str) -> SchemaVersion:
        response = await self._call("get_schema_version", SchemaVersionId=schema_version_id)
        return self._to_schema_version(response)

    async def get_latest_schema_version(
        self,
        registry_name: str,
        schema_name: str,
    ) -> SchemaVersion:
        response = await self._call(
            "get_schema_version",
            SchemaId={"RegistryName": registry_name, "SchemaName": schema_name},
            SchemaVersionNumber={"LatestVersion": True},
        )
        return self._to_schema_version(response)

    async def _call(self, operation: str, **kwargs: Any) -> Dict[str, Any]:
        """Invoke a Glue operation, translating botocore errors."""
        if self._client is None:
            await self.connect()

        try:
            response = await getattr(self._client, operation)(**kwargs)
        except EndpointConnectionError as e:
            raise RegistryConnectionError(f"Failed to connect to Glue endpoint: {e}") from e
        except ClientError as e:
            raise self._translate_client_error(operation, e) from e
        except BotoCoreError as e:
            raise RegistryError(f"Glue {operation} failed: {e}") from e

        logger.debug(f"Glue {operation} succeeded", extra={"operation": operation})
        return response

    @staticmethod
    def _translate_client_error(operation: str, e: ClientError) -> RegistryError:
        error_code = e.response.get("Error", {}).get("Code", "")
        if error_code == "EntityNotFoundException":
            return SchemaVersionNotFoundError(f"Glue {operation}: entity not found: {e}")
        if error_code == "AlreadyExistsException":
            return SchemaAlreadyExistsError(f"Glue {operation}: already exists: {e}")
        if error_code in _THROTTLING_CODES:
            return RegistryThrottledError(f"Glue {operation} throttled: {e}")
        return RegistryError(f"Glue {operation} failed: {e}")

    @staticmethod
    def _to_schema_version(response: Dict[str, Any]) -> SchemaVersion:
        return SchemaVersion(
            schema_version_id=response.get("SchemaVersionId"),
            definition=response.get("SchemaDefinition"),
            data_format=response.get("DataFormat"),
            status=response.get("Status"),
            schema_arn=response.get("SchemaArn"),
            version_number=response.get("VersionNumber"),
        )

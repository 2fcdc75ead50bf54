"""Airbyte configuration API client with common functionality."""

import logging
from typing import Any, Dict, Generator, Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)


class AirbyteClientError(Exception):
    """Base exception for Airbyte client operations."""

    pass


class AirbyteClient:
    """Wrapper around the Airbyte configuration API."""

    def __init__(self, http_client: Optional[httpx.Client] = None):
        """Initialize the HTTP client with basic authentication."""
        self.workspace_id = settings.airbyte_workspace_id
        self.http = http_client or httpx.Client(
            base_url=settings.airbyte_api_url,
            auth=(settings.airbyte_username, settings.airbyte_password),
            timeout=settings.airbyte_timeout_seconds,
        )

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "AirbyteClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def handle_airbyte_operation(
        self, operation_name: str, path: str, payload: Dict[str, Any]
    ) -> Dict[str, Any]:
        """POST to a configuration API endpoint with consistent error handling."""
        try:
            logger.info(f"Starting Airbyte operation: {operation_name}")
            response = self.http.post(path, json=payload)
            response.raise_for_status()
            logger.info(f"Completed Airbyte operation: {operation_name}")
            if not response.content:
                return {}
            result = response.json()
            if not isinstance(result, dict):
                raise ValueError(f"expected a JSON object, got {type(result).__name__}")
            return result

        except httpx.HTTPError as e:
            error_msg = f"Airbyte operation '{operation_name}' failed: {str(e)}"
            logger.error(error_msg)
            raise AirbyteClientError(error_msg) from e
        except ValueError as e:
            # A 2xx answer that is not JSON, e.g. an error page from a proxy
            error_msg = f"Airbyte operation '{operation_name}' returned an invalid response: {str(e)}"
            logger.error(error_msg)
            raise AirbyteClientError(error_msg) from e

    def list_source_definitions(self) -> list[Dict[str, Any]]:
        """List the connector definitions available to the workspace."""
        result = self.handle_airbyte_operation(
            "list_source_definitions",
            "/source_definitions/list_for_workspace",
            {"workspaceId": self.workspace_id},
        )
        return result.get("sourceDefinitions", [])

    def get_specification(self, source_definition_id: str) -> Dict[str, Any]:
        """Fetch the connection specification of a connector definition."""
        return self.handle_airbyte_operation(
            f"get_specification_{source_definition_id}",
            "/source_definition_specifications/get",
            {
                "sourceDefinitionId": source_definition_id,
                "workspaceId": self.workspace_id,
            },
        )

    def discover_schema(self, source_id: str) -> Dict[str, Any]:
        """Discover the streams a source exposes."""
        return self.handle_airbyte_operation(
            f"discover_schema_{source_id}",
            "/sources/discover_schema",
            {"sourceId": source_id, "disable_cache": True},
        )

    def list_jobs(self, connection_id: str, limit: int = 20) -> list[Dict[str, Any]]:
        """List recent sync jobs of a connection, newest first."""
        result = self.handle_airbyte_operation(
            f"list_jobs_{connection_id}",
            "/jobs/list",
            {
                "configTypes": ["sync"],
                "configId": connection_id,
                "pagination": {"pageSize": limit},
            },
        )
        return result.get("jobs", [])

    def create_source(
        self, name: str, source_definition_id: str, configuration: Dict[str, Any]
    ) -> Dict[str, Any]:
        return self.handle_airbyte_operation(
            f"create_source_{name}",
            "/sources/create",
            {
                "name": name,
                "sourceDefinitionId": source_definition_id,
                "workspaceId": self.workspace_id,
                "connectionConfiguration": configuration,
            },
        )

    def check_source(self, source_id: str) -> Dict[str, Any]:
        return self.handle_airbyte_operation(
            f"check_source_{source_id}",
            "/sources/check_connection",
            {"sourceId": source_id},
        )

    def delete_source(self, source_id: str) -> None:
        self.handle_airbyte_operation(
            f"delete_source_{source_id}", "/sources/delete", {"sourceId": source_id}
        )

    def create_connection(
        self,
        name: str,
        source_id: str,
        destination_id: str,
        sync_catalog: Dict[str, Any],
        schedule: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload = {
            "name": name,
            "sourceId": source_id,
            "destinationId": destination_id,
            "syncCatalog": sync_catalog,
            "status": "active",
        }
        payload.update(self.schedule_payload(schedule))
        return self.handle_airbyte_operation(
            f"create_connection_{name}", "/connections/create", payload
        )

    def update_connection(
        self,
        connection_id: str,
        sync_catalog: Optional[Dict[str, Any]] = None,
        schedule: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"connectionId": connection_id}
        if sync_catalog is not None:
            payload["syncCatalog"] = sync_catalog
        if schedule is not None:
            payload.update(self.schedule_payload(schedule))
        return self.handle_airbyte_operation(
            f"update_connection_{connection_id}", "/connections/update", payload
        )

    def trigger_sync(self, connection_id: str) -> Dict[str, Any]:
        return self.handle_airbyte_operation(
            f"trigger_sync_{connection_id}",
            "/connections/sync",
            {"connectionId": connection_id},
        )

    def delete_connection(self, connection_id: str) -> None:
        self.handle_airbyte_operation(
            f"delete_connection_{connection_id}",
            "/connections/delete",
            {"connectionId": connection_id},
        )

    @staticmethod
    def schedule_payload(schedule: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Translate a datasource schedule into Airbyte connection fields."""
        if not schedule or schedule.get("schedule_type", "manual") == "manual":
            return {"scheduleType": "manual"}
        if schedule["schedule_type"] == "cron":
            return {
                "scheduleType": "cron",
                "scheduleData": {
                    "cron": {
                        "cronExpression": schedule["cron_expression"],
                        "cronTimeZone": schedule.get("timezone", "UTC"),
                    }
                },
            }
        return {
            "scheduleType": "basic",
            "scheduleData": {
                "basicSchedule": {
                    "timeUnit": schedule.get("time_unit", "hours"),
                    "units": schedule.get("units", 24),
                }
            },
        }

    @staticmethod
    def build_sync_catalog(
        discovered: Dict[str, Any], selected_streams: list[str]
    ) -> Dict[str, Any]:
        """Mark the chosen streams of a discovered catalog as selected."""
        catalog = discovered.get("catalog", {"streams": []})
        streams = []
        for entry in catalog.get("streams", []):
            config = dict(entry.get("config", {}))
            config["selected"] = entry.get("stream", {}).get("name") in selected_streams
            streams.append({**entry, "config": config})
        return {"streams": streams}


def get_airbyte_client() -> Generator[AirbyteClient, None, None]:
    """Request scoped client, closed once the response is sent."""
    with AirbyteClient() as client:
        yield client

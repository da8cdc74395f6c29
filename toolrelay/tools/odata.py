"""
OData query tools.

- get_data_via_odata: build an OData v4 query against a configured entity
  and return the matching records
- get_process_discovery: look up business processes attached to a record

Upstream failures are returned to the model as a JSON error payload rather
than raised, so the model can correct its query and try again.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from toolrelay.tools.base import Tool
from toolrelay.types import ErrorCode, ToolResult

logger = logging.getLogger(__name__)

# Order matters: it is the order the clauses appear in the query string.
ODATA_PARAMS = ("select", "orderby", "top", "apply", "expand", "filter")


def build_odata_query_url(endpoint: str, params: dict | None = None) -> str:
    """Append the ``$``-prefixed OData clauses present in *params* to *endpoint*."""
    params = params or {}
    parts = [
        f"${key}={quote(str(params[key]), safe='')}"
        for key in ODATA_PARAMS
        if params.get(key)
    ]
    if not parts:
        return endpoint
    return endpoint + "?" + "&".join(parts)


class ODataError(Exception):
    """An OData endpoint answered with an error status."""

    def __init__(self, message: str, status: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status = status
        self.body = body

    def to_dict(self) -> dict:
        return {"message": str(self), "status": self.status, "body": self.body}


@dataclass
class EntityConfig:
    """How to reach one OData entity set."""

    entity_id: str
    endpoint: str
    type: str
    media_type: str = ""
    context_name: str = ""
    primary_key: str = ""
    schema_entity_name: str = ""

    @classmethod
    def from_dict(cls, entity_id: str, raw: dict) -> "EntityConfig":
        return cls(
            entity_id=str(entity_id),
            endpoint=raw.get("endpoint", ""),
            type=raw.get("type", ""),
            media_type=raw.get("media_type", ""),
            context_name=raw.get("context_name", ""),
            primary_key=raw.get("primary_key", ""),
            schema_entity_name=raw.get("schema_entity_name", ""),
        )


class ODataClient:
    """
    OData client authenticating with the OAuth2 client-credentials grant.

    The bearer token is cached until shortly before it expires.
    """

    def __init__(
        self,
        base_url: str,
        token_endpoint: str,
        client_id: str,
        client_secret: str,
        scope: str = "",
        process_discovery_url: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token_endpoint = token_endpoint
        self._client_id = client_id
        self._client_secret = client_secret
        self._scope = scope
        self._process_discovery_url = process_discovery_url
        self._timeout = timeout
        self._transport = transport
        self._token: str | None = None
        self._token_expires_at = 0.0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def get_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        async with self._client() as client:
            resp = await client.post(
                self._token_endpoint,
                data={"grant_type": "client_credentials", "scope": self._scope},
                auth=(self._client_id, self._client_secret),
                headers={"Accept": "application/json", "Cache-Control": "no-cache"},
            )
        if resp.status_code >= 400:
            raise ODataError("Token request failed", status=resp.status_code, body=resp.text[:500])

        data = resp.json()
        self._token = data["access_token"]
        # refresh a minute early
        self._token_expires_at = time.monotonic() + max(int(data.get("expires_in", 300)) - 60, 0)
        return self._token

    def resolve_url(self, url: str) -> str:
        if url.startswith(self.base_url) or url.startswith(("http://", "https://")):
            return url
        return f"{self.base_url}/{url.lstrip('/')}"

    async def fetch(self, url: str):
        token = await self.get_token()
        full_url = self.resolve_url(url)
        logger.info("OData fetch: %s", full_url)
        async with self._client() as client:
            resp = await client.get(
                full_url,
                headers={"Content-Type": "application/json", "Authorization": f"Bearer {token}"},
            )
        if resp.status_code >= 400:
            raise ODataError(
                "Request failed",
                status=resp.status_code,
                body=_error_message(resp),
            )
        return resp.json()

    async def process_discovery(self, entity: EntityConfig, record_id: str) -> list:
        if not entity.context_name or not entity.media_type:
            return []
        if not self._process_discovery_url:
            raise ODataError("Process discovery URL is not configured")

        token = await self.get_token()
        body = {
            "queries": [
                {
                    "mediaType": [entity.media_type],
                    "dataContext": {
                        "entities": [
                            {"properties": [{"name": entity.context_name, "value": record_id}]}
                        ]
                    },
                }
            ]
        }
        logger.info("Process discovery for %s (%s)", entity.type, record_id)
        async with self._client() as client:
            resp = await client.post(
                self._process_discovery_url,
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
        if resp.status_code >= 400:
            raise ODataError(
                "Failed to fetch process discovery results",
                status=resp.status_code,
                body=_error_message(resp),
            )
        return resp.json().get("results") or []


def _error_message(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return resp.text[:500]
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict) and err.get("message"):
            return err["message"]
    return json.dumps(payload)[:500]


def _entity_map(entities: dict[str, dict]) -> dict[str, EntityConfig]:
    return {str(k): EntityConfig.from_dict(k, v) for k, v in (entities or {}).items()}


def _error_payload(message: str, **extra) -> ToolResult:
    return ToolResult(
        success=False,
        content=message,
        error=message,
        error_code=ErrorCode.UPSTREAM_ERROR,
        metadata=extra,
    )


class ODataQueryTool(Tool):
    """Run an OData query against a configured entity."""

    def __init__(self, client: ODataClient, entities: dict[str, dict]) -> None:
        self._client = client
        self._entities = _entity_map(entities)

    @property
    def name(self) -> str:
        return "get_data_via_odata"

    @property
    def description(self) -> str:
        return "Construct an OData query and get the data for an entity using OData."

    @property
    def parameters(self) -> dict:
        clause = lambda text: {"type": "string", "description": text}  # noqa: E731
        return {
            "type": "object",
            "properties": {
                "explanation": clause(
                    "Step-by-step reasoning about the columns picked for the query. "
                    "Every column must exist in the entity schema."
                ),
                "entity_id": clause("The entity ID from the search results."),
                "select": clause("$select clause: columns to return."),
                "orderby": clause("$orderby clause: columns to order by."),
                "top": clause("$top clause: number of records to return."),
                "apply": clause("$apply clause, e.g. aggregate($count as Total)."),
                "expand": clause("$expand clause to include related entities."),
                "filter": clause("$filter clause following OData v4."),
                "display_type": {
                    "type": "string",
                    "enum": ["final_answer", "list_of_records", "explore_single_record", "interim_step"],
                    "description": "How the answer will be shown to the user.",
                },
            },
            "required": ["explanation", "entity_id", "display_type"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        entity = self._entities.get(str(kwargs["entity_id"]))
        if entity is None:
            return _error_payload(f"Unknown entity id: {kwargs['entity_id']}")

        endpoint = f"{self._client.base_url}/{entity.endpoint}{entity.type}"
        url = build_odata_query_url(endpoint, {k: kwargs.get(k) for k in ODATA_PARAMS})
        logger.info("OData query for entity %s: %s", entity.entity_id, url)

        try:
            data = await self._client.fetch(url)
        except ODataError as e:
            logger.warning("OData query failed: %s (%s)", e, e.status)
            return _error_payload(json.dumps(e.to_dict()), url=url)
        except httpx.HTTPError as e:
            logger.warning("OData transport error: %s", e)
            return _error_payload(f"OData request failed: {e}", url=url)

        records = data.get("value", data) if isinstance(data, dict) else data
        return ToolResult(
            success=True,
            content=json.dumps(records),
            data=records if isinstance(records, (dict, list)) else None,
            metadata={"url": url, "display_type": kwargs.get("display_type")},
        )


class ProcessDiscoveryTool(Tool):
    """List the business processes attached to one record."""

    def __init__(self, client: ODataClient, entities: dict[str, dict]) -> None:
        self._client = client
        self._entities = _entity_map(entities)

    @property
    def name(self) -> str:
        return "get_process_discovery"

    @property
    def description(self) -> str:
        return "Find follow-up actions and processes available for a single record of an entity."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "entity_id": {"type": "string", "description": "The entity ID of the record."},
                "record_id": {"type": "string", "description": "The record's identifier value."},
            },
            "required": ["entity_id", "record_id"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        entity = self._entities.get(str(kwargs["entity_id"]))
        if entity is None:
            return _error_payload(f"Unknown entity id: {kwargs['entity_id']}")
        try:
            results = await self._client.process_discovery(entity, str(kwargs["record_id"]))
        except ODataError as e:
            logger.warning("Process discovery failed: %s", e)
            return _error_payload(json.dumps(e.to_dict()))
        except httpx.HTTPError as e:
            logger.warning("Process discovery transport error: %s", e)
            return _error_payload(f"Process discovery request failed: {e}")
        return ToolResult(success=True, content=json.dumps(results), data=results)

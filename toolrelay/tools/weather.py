"""
Weather tools backed by the US National Weather Service API.

- get_alerts
- get_forecast

Fetch failures never raise: each tool answers with a readable fallback text
so one bad upstream call does not end the conversation.
"""

from __future__ import annotations

import logging

import httpx

from toolrelay.tools.base import Tool
from toolrelay.types import ToolResult, ErrorCode

logger = logging.getLogger(__name__)

NWS_API_BASE = "https://api.weather.gov"
USER_AGENT = "weather-app/1.0"


class NWSClient:
    """Thin async client for api.weather.gov."""

    def __init__(
        self,
        api_base: str = NWS_API_BASE,
        user_agent: str = USER_AGENT,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self._headers = {
            "User-Agent": user_agent,
            "Accept": "application/geo+json",
        }
        self._timeout = timeout
        self._transport = transport

    async def get_json(self, url: str) -> dict | None:
        """GET *url* and return the decoded body, or ``None`` on any failure."""
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.get(url, headers=self._headers)
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error making NWS request to %s: %s", url, e)
            return None


def format_alert(feature: dict) -> str:
    props = feature.get("properties") or {}
    return "\n".join([
        f"Event: {props.get('event') or 'Unknown'}",
        f"Area: {props.get('areaDesc') or 'Unknown'}",
        f"Severity: {props.get('severity') or 'Unknown'}",
        f"Status: {props.get('status') or 'Unknown'}",
        f"Headline: {props.get('headline') or 'No headline'}",
        "---",
    ])


def format_period(period: dict) -> str:
    temperature = period.get("temperature")
    return "\n".join([
        f"{period.get('name') or 'Unknown'}:",
        f"Temperature: {'Unknown' if temperature is None else temperature}°{period.get('temperatureUnit') or 'F'}",
        f"Wind: {period.get('windSpeed') or 'Unknown'} {period.get('windDirection') or ''}",
        f"{period.get('shortForecast') or 'No forecast available'}",
        "---",
    ])


def _fallback(text: str) -> ToolResult:
    return ToolResult(
        success=True,
        content=text,
        metadata={"fallback": True, "error_code": ErrorCode.UPSTREAM_ERROR},
    )


class GetAlertsTool(Tool):
    """Active weather alerts for a US state."""

    def __init__(self, client: NWSClient) -> None:
        self._client = client

    @property
    def name(self) -> str:
        return "get_alerts"

    @property
    def description(self) -> str:
        return "Get weather alerts for a state"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "state": {
                    "type": "string",
                    "minLength": 2,
                    "maxLength": 2,
                    "description": "Two-letter state code (e.g. CA, NY)",
                },
            },
            "required": ["state"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        state_code = kwargs["state"].upper()
        data = await self._client.get_json(
            f"{self._client.api_base}/alerts?area={state_code}"
        )
        if not data:
            return _fallback("Failed to retrieve alerts data")

        features = data.get("features") or []
        if not features:
            return ToolResult(success=True, content=f"No active alerts for {state_code}")

        alerts = "\n".join(format_alert(f) for f in features)
        return ToolResult(
            success=True,
            content=f"Active alerts for {state_code}:\n\n{alerts}",
            metadata={"count": len(features)},
        )


class GetForecastTool(Tool):
    """Forecast periods for a latitude/longitude pair."""

    def __init__(self, client: NWSClient) -> None:
        self._client = client

    @property
    def name(self) -> str:
        return "get_forecast"

    @property
    def description(self) -> str:
        return "Get weather forecast for a location"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "latitude": {
                    "type": "number",
                    "minimum": -90,
                    "maximum": 90,
                    "description": "Latitude of the location",
                },
                "longitude": {
                    "type": "number",
                    "minimum": -180,
                    "maximum": 180,
                    "description": "Longitude of the location",
                },
            },
            "required": ["latitude", "longitude"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        latitude = float(kwargs["latitude"])
        longitude = float(kwargs["longitude"])

        points = await self._client.get_json(
            f"{self._client.api_base}/points/{latitude:.4f},{longitude:.4f}"
        )
        if not points:
            return _fallback(
                f"Failed to retrieve grid point data for coordinates: {latitude}, {longitude}. "
                "This location may not be supported by the NWS API (only US locations are supported)."
            )

        forecast_url = (points.get("properties") or {}).get("forecast")
        if not forecast_url:
            return _fallback("Failed to get forecast URL from grid point data")

        forecast = await self._client.get_json(forecast_url)
        if not forecast:
            return _fallback("Failed to retrieve forecast data")

        periods = (forecast.get("properties") or {}).get("periods") or []
        if not periods:
            return ToolResult(success=True, content="No forecast periods available")

        body = "\n".join(format_period(p) for p in periods)
        return ToolResult(
            success=True,
            content=f"Forecast for {latitude}, {longitude}:\n\n{body}",
            data={"periods": periods},
        )

"""Tests for the NWS weather tools."""

from __future__ import annotations

import httpx
import pytest

from toolrelay.tools.weather import (
    GetAlertsTool,
    GetForecastTool,
    NWSClient,
    format_alert,
    format_period,
)

API = "https://api.weather.test"


def _nws(routes: dict[str, httpx.Response], seen: list | None = None) -> NWSClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return routes.get(str(request.url), httpx.Response(404, json={"detail": "not found"}))

    return NWSClient(api_base=API, transport=httpx.MockTransport(handler))


ALERT = {
    "properties": {
        "event": "Heat Advisory",
        "areaDesc": "Inland Empire",
        "severity": "Moderate",
        "status": "Actual",
        "headline": "Hot days ahead",
    }
}

PERIOD = {
    "name": "Tonight",
    "temperature": 58,
    "temperatureUnit": "F",
    "windSpeed": "5 mph",
    "windDirection": "SW",
    "shortForecast": "Clear",
}


class TestFormatting:
    def test_format_alert(self):
        assert format_alert(ALERT) == (
            "Event: Heat Advisory\n"
            "Area: Inland Empire\n"
            "Severity: Moderate\n"
            "Status: Actual\n"
            "Headline: Hot days ahead\n"
            "---"
        )

    def test_format_alert_missing_fields(self):
        text = format_alert({"properties": {}})
        assert "Event: Unknown" in text
        assert "Headline: No headline" in text

    def test_format_period(self):
        assert format_period(PERIOD) == (
            "Tonight:\nTemperature: 58°F\nWind: 5 mph SW\nClear\n---"
        )

    def test_format_period_freezing(self):
        text = format_period({**PERIOD, "temperature": 0})
        assert "Temperature: 0°F" in text

    def test_format_period_missing_temperature(self):
        assert "Temperature: Unknown°F" in format_period({"name": "Tonight"})


class TestGetAlerts:
    async def test_alerts_found(self):
        seen: list[httpx.Request] = []
        client = _nws(
            {f"{API}/alerts?area=CA": httpx.Response(200, json={"features": [ALERT]})},
            seen,
        )
        result = await GetAlertsTool(client).execute(state="ca")

        assert result.success
        assert result.content.startswith("Active alerts for CA:\n\n")
        assert "Heat Advisory" in result.content
        assert seen[0].headers["User-Agent"] == "weather-app/1.0"
        assert seen[0].headers["Accept"] == "application/geo+json"

    async def test_no_alerts(self):
        client = _nws({f"{API}/alerts?area=NY": httpx.Response(200, json={"features": []})})
        result = await GetAlertsTool(client).execute(state="NY")
        assert result.content == "No active alerts for NY"

    async def test_upstream_failure_is_fallback_text(self):
        client = _nws({f"{API}/alerts?area=TX": httpx.Response(500, text="oops")})
        result = await GetAlertsTool(client).execute(state="TX")
        assert result.success
        assert result.content == "Failed to retrieve alerts data"
        assert result.metadata["fallback"] is True


class TestGetForecast:
    async def test_forecast(self):
        forecast_url = f"{API}/gridpoints/LOX/1,2/forecast"
        client = _nws({
            f"{API}/points/34.0500,-118.2500": httpx.Response(
                200, json={"properties": {"forecast": forecast_url}}
            ),
            forecast_url: httpx.Response(200, json={"properties": {"periods": [PERIOD]}}),
        })
        result = await GetForecastTool(client).execute(latitude=34.05, longitude=-118.25)

        assert result.success
        assert result.content.startswith("Forecast for 34.05, -118.25:\n\n")
        assert "Temperature: 58°F" in result.content
        assert result.data == {"periods": [PERIOD]}

    async def test_unsupported_location(self):
        client = _nws({})
        result = await GetForecastTool(client).execute(latitude=51.5, longitude=-0.12)
        assert "only US locations are supported" in result.content

    async def test_missing_forecast_url(self):
        client = _nws({f"{API}/points/40.0000,-75.0000": httpx.Response(200, json={"properties": {}})})
        result = await GetForecastTool(client).execute(latitude=40, longitude=-75)
        assert result.content == "Failed to get forecast URL from grid point data"

    async def test_no_periods(self):
        forecast_url = f"{API}/f"
        client = _nws({
            f"{API}/points/40.0000,-75.0000": httpx.Response(
                200, json={"properties": {"forecast": forecast_url}}
            ),
            forecast_url: httpx.Response(200, json={"properties": {"periods": []}}),
        })
        result = await GetForecastTool(client).execute(latitude=40, longitude=-75)
        assert result.content == "No forecast periods available"

    @pytest.mark.parametrize("args", [{"latitude": 91, "longitude": 0}, {"latitude": 0}])
    def test_schema_bounds(self, args):
        from toolrelay.tools.validation import ToolValidator

        ok, _ = ToolValidator.validate(GetForecastTool(_nws({})), args)
        assert not ok

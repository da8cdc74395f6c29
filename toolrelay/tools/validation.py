import json

import jsonschema

from toolrelay.errors import ArgumentDecodeError
from toolrelay.tools.base import Tool, normalize_schema


def decode_arguments(raw: str | dict | None) -> dict:
    """Turn a tool call's wire-form arguments into a keyword mapping."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    if not isinstance(raw, str):
        raise ArgumentDecodeError(
            f"Arguments must be a JSON object, got {type(raw).__name__}"
        )
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ArgumentDecodeError(f"Arguments are not valid JSON: {e.msg}") from e
    if decoded is None:
        return {}
    if not isinstance(decoded, dict):
        raise ArgumentDecodeError(
            f"Arguments must be a JSON object, got {type(decoded).__name__}"
        )
    return decoded


class ToolValidator:
    @staticmethod
    def validate(tool: Tool, arguments: dict) -> tuple[bool, str | None]:
        try:
            jsonschema.validate(
                instance=arguments,
                schema=normalize_schema(tool.parameters),
            )
            return True, None
        except jsonschema.ValidationError as e:
            return False, str(e.message)

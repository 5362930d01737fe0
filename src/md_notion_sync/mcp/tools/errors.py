"""Error response builders for MCP tool handlers.

Errors carry a corrective action so an agent can recover without human
intervention.
"""

import mcp.types as types
from notion_client.errors import HTTPResponseError, RequestTimeoutError

from ...errors import (
    DocSyncError,
    InvalidConfigurationError,
    MappingStoreError,
)


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, permission_denied,
            rate_limited, validation_error, configuration_error,
            server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("not_found", "Page abc not found", "Re-run doc_sync.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


# Notion API error code -> (error_type, corrective action)
_API_ERRORS: dict[str, tuple[str, str]] = {
    "unauthorized": (
        "permission_denied",
        "Check NOTION_TOKEN; the integration token was rejected.",
    ),
    "restricted_resource": (
        "permission_denied",
        "Share the parent page or database with the integration.",
    ),
    "object_not_found": (
        "not_found",
        "Verify the parent page id and that it is shared with the integration.",
    ),
    "rate_limited": (
        "rate_limited",
        "Wait a minute, then retry with fewer documents.",
    ),
    "validation_error": (
        "validation_error",
        "Check the database title property and page content, then retry.",
    ),
}


def translate_api_error(error: HTTPResponseError) -> types.CallToolResult:
    """Translate a Notion API error into a structured error response."""
    code = str(getattr(error.code, "value", error.code))
    error_type, action = _API_ERRORS.get(
        code, ("server_error", "Notion may be unavailable; retry later.")
    )
    return build_error_response(error_type, str(error), action)


def translate_sync_error(error: Exception) -> types.CallToolResult:
    """Map sync-layer and transport exceptions to error responses."""
    match error:
        case HTTPResponseError():
            return translate_api_error(error)
        case RequestTimeoutError():
            return build_error_response(
                "server_error", "Notion request timed out", "Retry later."
            )
        case InvalidConfigurationError():
            return build_error_response(
                "configuration_error",
                str(error),
                "Fix the server configuration (.notion-sync.yml or "
                "environment) and restart the server.",
            )
        case MappingStoreError():
            return build_error_response(
                "server_error",
                str(error),
                "Repair or remove the mapping file; removing it recreates "
                "every page on the next sync.",
            )
        case DocSyncError():
            return build_error_response(
                "server_error", str(error), "Check the server log and retry."
            )
        case ValueError():
            return build_error_response(
                "validation_error",
                str(error),
                "Check parameter values and retry.",
            )
        case _:
            return build_error_response(
                "server_error",
                str(error),
                "Check Notion connectivity or retry later.",
            )

"""Error response builders for MCP tool handlers.

Structured errors carry a corrective action so an agent can recover
without human intervention.
"""

import mcp.types as types

from ...core.client import GitCommandError


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (validation_error, git_error,
            network_error, auth_error, busy, server_error, unknown_tool)
        message: Human-readable error description
        corrective_action: Specific action the agent can take

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("busy", "Sync already in progress", "Retry in a few seconds.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def translate_git_error(error: GitCommandError) -> types.CallToolResult:
    """Translate a failed git call into a structured error response."""
    stderr = error.stderr.lower()

    match stderr:
        case s if "authentication" in s or "permission denied" in s or "403" in s:
            return build_error_response(
                "auth_error",
                error.stderr,
                "Check the credentials configured for the remote.",
            )
        case s if (
            "could not resolve host" in s
            or "unable to access" in s
            or "timed out" in s
            or "connection" in s
        ):
            return build_error_response(
                "network_error",
                error.stderr,
                "Check network connectivity, then retry the sync.",
            )
        case s if "not a git repository" in s:
            return build_error_response(
                "git_error",
                error.stderr,
                "Point FRAME_SYNC_REPO_PATH at a clone of the art repository.",
            )
        case _:
            return build_error_response(
                "git_error",
                str(error),
                "Run sync_git_status to inspect the repository, then retry.",
            )

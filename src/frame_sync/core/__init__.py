"""Git access shared between the HTTP and MCP surfaces."""

from .async_utils import run_sync
from .client import GitClient, GitCommandError

__all__ = ["GitClient", "GitCommandError", "run_sync"]

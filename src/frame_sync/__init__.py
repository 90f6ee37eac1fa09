"""Git-backed synchronization engine for a frame art media library."""

__version__ = "0.1.0"

"""HTTP surface for the sync engine.

Run with:
    frame-sync-http --repo /srv/frame_art --port 8080
"""

from .app import create_app

__all__ = ["create_app"]

"""
FastAPI application for the sync HTTP surface.

Creates the app, wires the SyncService through the lifespan, and registers
the ``/api/sync`` routes.
"""

import argparse
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .. import __version__
from ..logger import setup_logging
from ..runtime import load_runtime_config, start_service
from ..sync.service import SyncService
from .routes import router

logger = logging.getLogger(__name__)


def create_app(
    service: SyncService | None = None,
    config_overrides: dict | None = None,
) -> FastAPI:
    """Build the FastAPI app.

    Args:
        service: Ready-made service (tests). When omitted the lifespan loads
            configuration and runs the startup tasks.
        config_overrides: CLI values passed to configuration loading.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if service is not None:
            app.state.sync_service = service
        else:
            config = load_runtime_config(config_overrides)
            app.state.sync_service = await start_service(config)
        logger.info("Sync API ready")
        yield
        logger.info("Sync API shutting down")

    app = FastAPI(
        title="Frame Sync API",
        description="Git-backed sync for the frame art library",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log uncaught exceptions and return a generic 500 body."""
        logger.exception(
            "Unhandled exception on %s %s", request.method, request.url.path
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "An internal server error occurred",
                "detail": str(exc),
            },
        )

    return app


def main() -> None:
    """Entry point for ``frame-sync-http``."""
    parser = argparse.ArgumentParser(
        prog="frame-sync-http",
        description="Serve the frame art sync API over HTTP",
    )
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--repo", help="Working copy of the art library")
    parser.add_argument("--remote", help="Remote name (default: origin)")
    parser.add_argument("--branch", help="Branch to sync (default: main)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    args = parser.parse_args()

    setup_logging(mode="http", debug=args.debug)

    import uvicorn

    app = create_app(
        config_overrides={
            "repo": args.repo,
            "remote": args.remote,
            "branch": args.branch,
            "debug": args.debug,
        }
    )
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()

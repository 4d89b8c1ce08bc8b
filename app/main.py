"""Entry point for the FastAPI-powered ModiKodi bridge addon."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from .config import settings
from .identity import client_identity
from .models import ResumeReport
from .services.bridge import CONTINUE_CATALOG_ID, BridgeService
from .services.metadata import MetadataProvider
from .services.tmdb import TMDBMetadataProvider
from .services.upstream import UpstreamAddonClient, decode_upstream
from .utils import hostname_of, parse_version

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

MANIFEST_ID = "com.modikodi.bridge"
CONTENT_TYPES = ("movie", "series")

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    upstream_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(settings.upstream_timeout_seconds, connect=5.0),
            follow_redirects=True,
        )
    )
    metadata_provider: MetadataProvider | None = None
    if settings.tmdb_api_key:
        tmdb_http_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                base_url=str(settings.tmdb_api_url).rstrip("/"),
                timeout=httpx.Timeout(settings.metadata_timeout_seconds),
            )
        )
        metadata_provider = TMDBMetadataProvider(tmdb_http_client, settings.tmdb_api_key)
    else:
        logger.info("TMDB_API_KEY not set; catalog entries will use fallback metadata")

    upstream = UpstreamAddonClient(
        upstream_http_client, timeout_seconds=settings.upstream_timeout_seconds
    )
    bridge = BridgeService(settings, upstream, metadata_provider)

    fastapi_app.state.bridge = bridge
    await bridge.start()

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await bridge.stop()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Content identification bridge between Stremio and ModiKodi",
        version=settings.bridge_version,
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_bridge(app: FastAPI) -> BridgeService:
    bridge = getattr(app.state, "bridge", None)
    if not isinstance(bridge, BridgeService):
        raise RuntimeError("Bridge service not initialised")
    return bridge


def build_manifest(*, upstream_token: str | None = None) -> dict[str, Any]:
    """Return the addon manifest for zero-config or wrapper mode."""

    manifest: dict[str, Any] = {
        "id": MANIFEST_ID,
        "version": settings.bridge_version,
        "name": settings.app_name,
        "logo": str(settings.logo_url),
        "types": list(CONTENT_TYPES),
        "idPrefixes": ["tt"],
    }
    if upstream_token is None:
        manifest.update(
            {
                "description": (
                    "Enables Trakt scrobbling in the ModiKodi external player. "
                    "Just install, no setup needed."
                ),
                "catalogs": [
                    {"type": content_type, "id": CONTINUE_CATALOG_ID, "name": "Continue Watching"}
                    for content_type in CONTENT_TYPES
                ],
                "resources": ["stream", "catalog"],
            }
        )
        return manifest

    upstream_name = hostname_of(decode_upstream(upstream_token))
    if upstream_name:
        manifest["name"] = f"{settings.app_name} ({upstream_name})"
    manifest.update(
        {
            "description": (
                "Embeds content metadata (IMDB, season, episode) in stream URLs "
                "for ModiKodi Trakt scrobbling."
            ),
            "catalogs": [],
            "resources": ["stream"],
        }
    )
    return manifest


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(
            "%s %s from %s", request.method, request.url.path, client_identity(request)
        )
        return await call_next(request)

    @fastapi_app.get("/")
    async def index() -> dict[str, str]:
        return {"name": settings.app_name, "version": settings.bridge_version}

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/version")
    async def version() -> dict[str, object]:
        return parse_version(settings.bridge_version)

    @fastapi_app.get("/manifest.json")
    async def manifest() -> dict[str, Any]:
        return build_manifest()

    @fastapi_app.get(f"/catalog/{{content_type}}/{CONTINUE_CATALOG_ID}.json")
    async def continue_watching(content_type: str) -> JSONResponse:
        bridge = get_bridge(fastapi_app)
        metas = await bridge.continue_watching(content_type)
        return JSONResponse({"metas": metas})

    @fastapi_app.get("/stream/{content_type}/{content_id}.json")
    async def stream(request: Request, content_type: str, content_id: str) -> JSONResponse:
        bridge = get_bridge(fastapi_app)
        identity = client_identity(request)
        logger.info("Stream %s/%s from %s", content_type, content_id, identity)
        bridge.record_stream(identity, content_type, content_id)
        return JSONResponse({"streams": []})

    @fastapi_app.get("/identify")
    async def identify(request: Request) -> JSONResponse:
        bridge = get_bridge(fastapi_app)
        return JSONResponse(bridge.identify(client_identity(request)))

    @fastapi_app.post("/resume")
    async def resume(request: Request) -> JSONResponse:
        bridge = get_bridge(fastapi_app)
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        try:
            report = ResumeReport.model_validate(payload)
        except ValidationError:
            if not payload.get("imdb"):
                return JSONResponse({"error": "imdb required"}, status_code=400)
            return JSONResponse({"error": "invalid resume payload"}, status_code=400)
        if not report.imdb:
            return JSONResponse({"error": "imdb required"}, status_code=400)
        bridge.report_resume(report)
        return JSONResponse({"ok": True})

    @fastapi_app.get("/{upstream}/manifest.json")
    async def wrapped_manifest(upstream: str) -> dict[str, Any]:
        return build_manifest(upstream_token=upstream)

    @fastapi_app.get("/{upstream}/stream/{content_type}/{content_id}.json")
    async def wrapped_stream(
        request: Request, upstream: str, content_type: str, content_id: str
    ) -> JSONResponse:
        bridge = get_bridge(fastapi_app)
        identity = client_identity(request)
        logger.info(
            "Wrapped stream %s/%s from %s", content_type, content_id, identity
        )
        streams = await bridge.wrapped_streams(identity, upstream, content_type, content_id)
        return JSONResponse({"streams": streams})

    @fastapi_app.options("/{path:path}")
    async def preflight(path: str) -> Response:
        # Stremio clients may send OPTIONS without CORS request headers.
        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Headers": "*",
            },
        )


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )

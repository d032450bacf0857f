"""Fotostand — FastAPI Application.

This module defines the web layer of the photo booth: the ``create_app()``
factory, all routes, and the ``main()`` CLI function that launches uvicorn.

Architecture
------------
The routes are thin wrappers around the core:

- **Configuration** is an explicit :class:`~fotostand.core.config.FotostandConfig`
  passed to ``create_app()``; the store and upload gateway built from it are
  kept on ``app.state``.
- **Gallery persistence** is the file-backed
  :class:`~fotostand.core.gallery_store.GalleryStore` — no database.
- **Blocking file I/O** runs in the threadpool via ``run_in_threadpool`` so
  the event loop is never blocked by disk access.
- **Errors** raised by the core (:class:`~fotostand.core.errors.FotostandError`)
  are turned into ``{"error": ...}`` JSON responses by a single exception
  handler.

Endpoints
---------
========  ================================  ====================================
Method    Path                              Purpose
========  ================================  ====================================
GET       ``/``                             Code entry page
GET       ``/gallery/{gallery_id}``         Gallery page
GET       ``/img/{gallery_id}/{filename}``  Download a photo
GET       ``/api/gallery/{gallery_id}``     Gallery listing (JSON)
POST      ``/api/upload/{gallery_id}``      Authenticated upload
GET       ``/api/config``                   Public configuration
GET       ``/health``                       Liveness probe
========  ================================  ====================================

Usage
-----
CLI (installed entry point)::

    fotostand

Hash an upload token for ``FOTOSTAND_UPLOAD_TOKEN_HASH``::

    fotostand --hash-token "$(openssl rand -hex 64)"
"""

from __future__ import annotations

import argparse
import html
import logging
from urllib.parse import quote

from fastapi import APIRouter, FastAPI, File, Header, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from starlette.concurrency import run_in_threadpool

from fotostand import __version__
from fotostand.api.models import (
    ConfigResponse,
    ErrorResponse,
    GalleryFileEntry,
    GalleryResponse,
    UploadResponse,
)
from fotostand.core.config import FotostandConfig
from fotostand.core.errors import FotostandError, InvalidPathError, NotFoundError, StorageError
from fotostand.core.gallery_store import GalleryStore
from fotostand.core.security import ensure_valid_path, hash_upload_token
from fotostand.core.upload import UploadGateway

logger = logging.getLogger(__name__)

IMAGE_CACHE_CONTROL = "immutable, max-age=360"

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers.
# ---------------------------------------------------------------------------


def _content_disposition(filename: str) -> str:
    """Build an ``inline`` Content-Disposition header value.

    Display names built from metadata are plain ASCII.  The on-disk fallback
    name may not be, so a UTF-8 ``filename*`` parameter is added for those.
    """
    if filename.isascii():
        return f'inline; filename="{filename}"'
    ascii_name = filename.encode("ascii", "ignore").decode() or "photo"
    return f"inline; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


def _not_found_page(event_title: str) -> str:
    title = html.escape(event_title)
    return (
        f"<!doctype html><html><head><meta charset='utf-8'><title>{title}</title></head>"
        "<body><h1>Not Found!</h1>"
        "<p>No worries! Your images might still be uploading. "
        "Feel free to talk to us at the booth!</p>"
        "<p><a href='/'>Back</a></p></body></html>"
    )


async def _list_gallery(request: Request, gallery_id: str) -> GalleryResponse:
    """Load a gallery listing, mapping unsafe ids to "not found"."""
    store: GalleryStore = request.app.state.store
    try:
        files = await run_in_threadpool(store.list_files, gallery_id)
        metadata = await run_in_threadpool(store.read_metadata, gallery_id)
    except InvalidPathError as e:
        raise NotFoundError(f"Gallery {gallery_id} not found") from e

    event_title = metadata.event_title if metadata else request.app.state.config.event_title
    return GalleryResponse(
        id=gallery_id,
        event_title=event_title,
        files=[
            GalleryFileEntry(
                name=f.name,
                size=f.size,
                url=f"/img/{quote(gallery_id)}/{quote(f.name)}",
            )
            for f in files
        ],
    )


# ---------------------------------------------------------------------------
# Pages.
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
async def index(request: Request, code: str | None = None) -> Response:
    """Serve the code entry page, or redirect to the gallery for ``?code=``."""
    if code:
        target = quote(code.strip(), safe="")
        return RedirectResponse(url=f"/gallery/{target}", status_code=303)

    title = html.escape(request.app.state.config.event_title)
    return HTMLResponse(
        content=(
            f"<!doctype html><html><head><meta charset='utf-8'><title>{title}</title></head>"
            f"<body><h1>{title}</h1>"
            "<form method='get' action='/'>"
            "<label for='code'>Code</label> <input id='code' name='code' autofocus>"
            "<button type='submit'>Fotos abrufen</button></form></body></html>"
        )
    )


@router.get("/gallery/{gallery_id}", response_class=HTMLResponse)
async def gallery_page(request: Request, gallery_id: str) -> HTMLResponse:
    """Serve a minimal HTML page with every photo of a gallery.

    Raises:
        NotFoundError: 404 if the gallery is missing or the id is unsafe.
    """
    gallery = await _list_gallery(request, gallery_id)
    title = html.escape(gallery.event_title)
    items = "".join(
        f"<a href='{html.escape(f.url)}' download><img src='{html.escape(f.url)}' "
        f"alt='{html.escape(f.name)}' style='max-width:100%'></a>"
        for f in gallery.files
    )
    return HTMLResponse(
        content=(
            f"<!doctype html><html><head><meta charset='utf-8'><title>{title}</title></head>"
            f"<body><h1>{title}</h1><div>{items}</div></body></html>"
        )
    )


@router.get("/img/{gallery_id}/{filename}")
async def get_image(request: Request, gallery_id: str, filename: str) -> Response:
    """Serve a photo under its event-based display name.

    Returns:
        The raw file with ``Content-Disposition`` set to the display name
        and an immutable cache directive.

    Raises:
        NotFoundError: 404 if the gallery or file is missing, or either
            segment fails the path-safety guard.
    """
    store: GalleryStore = request.app.state.store
    try:
        resolved = await run_in_threadpool(store.resolve_file, gallery_id, filename)
    except InvalidPathError as e:
        raise NotFoundError("Not found") from e

    return Response(
        content=resolved.content,
        media_type=resolved.media_type,
        headers={
            "Cache-Control": IMAGE_CACHE_CONTROL,
            "Content-Disposition": _content_disposition(resolved.display_filename),
        },
    )


# ---------------------------------------------------------------------------
# JSON API.
# ---------------------------------------------------------------------------


@router.get("/api/gallery/{gallery_id}", response_model=GalleryResponse)
async def get_gallery(request: Request, gallery_id: str) -> GalleryResponse:
    """Return the file listing of a gallery.

    Raises:
        NotFoundError: 404 if the gallery is missing or the id is unsafe.
    """
    return await _list_gallery(request, gallery_id)


@router.post(
    "/api/upload/{gallery_id}",
    status_code=201,
    response_model=UploadResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def upload_file(
    request: Request,
    gallery_id: str,
    file: UploadFile | None = File(None),
    authorization: str | None = Header(None),
) -> UploadResponse:
    """Store an uploaded file in a gallery, creating the gallery if needed.

    Checks run in order: gallery id, upload configuration, bearer token,
    file presence, size and type.  Nothing is written unless all pass.

    Args:
        gallery_id: Target gallery.
        file: Multipart ``file`` field.
        authorization: ``Bearer <token>`` header.

    Returns:
        The generated filename and the gallery id (201).

    Raises:
        InvalidPathError: 400 for an unsafe gallery id.
        NotConfiguredError: 503 when no token hash is configured.
        UnauthorizedError: 401 for a missing or wrong token.
        PayloadTooLargeError: 400 for files above the size limit.
        UnsupportedMediaTypeError: 400 for disallowed MIME types.
    """
    gateway: UploadGateway = request.app.state.upload_gateway

    try:
        ensure_valid_path(gallery_id)
    except InvalidPathError as e:
        raise InvalidPathError("Invalid gallery ID") from e
    gateway.authorize(authorization)

    if file is None or not file.filename:
        return JSONResponse(status_code=400, content={"error": "No file provided"})

    # Reject oversized files before pulling them into memory.
    if file.size is not None:
        gateway.validate_file(file.size, file.content_type)

    data = await file.read()
    result = await run_in_threadpool(
        gateway.accept, gallery_id, data, file.filename, file.content_type
    )
    return UploadResponse(success=result.success, filename=result.filename, gallery_id=result.gallery_id)


@router.get("/api/config", response_model=ConfigResponse)
async def get_config(request: Request) -> ConfigResponse:
    """Return the public configuration for the frontend."""
    config: FotostandConfig = request.app.state.config
    return ConfigResponse(
        version=__version__,
        event_title=config.event_title,
        id_mode=config.id_mode,
        upload_enabled=config.upload_enabled,
    )


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


async def _fotostand_error_handler(request: Request, exc: FotostandError) -> Response:
    path = request.url.path
    if exc.status_code == 500:
        logger.error(f"{request.method} {path} failed: {exc}")

    if isinstance(exc, NotFoundError) and path.startswith("/gallery/"):
        return HTMLResponse(status_code=404, content=_not_found_page(request.app.state.config.event_title))

    message = exc.message
    if isinstance(exc, StorageError) and path.startswith("/api/upload/"):
        message = "Upload failed"
    return JSONResponse(status_code=exc.status_code, content={"error": message})


def create_app(config: FotostandConfig | None = None) -> FastAPI:
    """Build the FastAPI application for ``config``.

    Args:
        config: Booth configuration.  Loaded from the environment when omitted.

    Returns:
        The configured application with store and upload gateway on ``app.state``.
    """
    config = config or FotostandConfig()
    store = GalleryStore.from_config(config)

    app = FastAPI(
        title="Fotostand",
        description="Event photo booth galleries with authenticated upload.",
        version=__version__,
    )
    app.state.config = config
    app.state.store = store
    app.state.upload_gateway = UploadGateway.from_config(config, store)

    # The booth frontend and upload tools may live on other origins within the
    # event network.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(FotostandError, _fotostand_error_handler)
    app.include_router(router)

    if not config.upload_enabled:
        logger.info("No upload token hash configured; uploads are disabled.")
    logger.info(f"Serving galleries from {config.data_dir} for '{config.event_title}'")
    return app


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :class:`FotostandConfig` (``FOTOSTAND_SERVER_HOST``
    and ``FOTOSTAND_SERVER_PORT``).  Defaults to ``0.0.0.0:8080``.

    This function is registered as the ``fotostand`` console script in
    ``pyproject.toml``.
    """
    parser = argparse.ArgumentParser(prog="fotostand", description="Fotostand gallery server")
    parser.add_argument(
        "--hash-token",
        metavar="TOKEN",
        help="print the SHA-256 hash to use as FOTOSTAND_UPLOAD_TOKEN_HASH and exit",
    )
    args = parser.parse_args(argv)

    if args.hash_token is not None:
        print(hash_upload_token(args.hash_token))
        return

    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    config = FotostandConfig()
    uvicorn.run(create_app(config), host=config.server_host, port=config.server_port)


if __name__ == "__main__":
    main()

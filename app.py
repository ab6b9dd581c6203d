#!/usr/bin/env python3
import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import (DB_PATH, ALLOWED_ORIGINS, GZIP_MIN_SIZE, VIEWS_DIR, PUBLIC_DIR, TEXT_NOT_FOUND,
                    HTTP_BAD_REQUEST, HTTP_NOT_FOUND, HTTP_INTERNAL_SERVER_ERROR)
from database import DatabaseManager
from endpoints import get_all_routers, text_response
from exceptions import NotFound, ValidationError
from models import ErrorResponse
from security import SecurityHeadersMiddleware

logger = logging.getLogger(__name__)


def error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, message=message).model_dump()
    )


def _validation_message(exc) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(problems) or "Invalid request"


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, exc.__class__.__name__, str(exc.detail))

    @app.exception_handler(PydanticValidationError)
    async def body_validation_handler(request: Request, exc: PydanticValidationError):
        return error_response(HTTP_BAD_REQUEST, "ValidationError", _validation_message(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(HTTP_BAD_REQUEST, "ValidationError", _validation_message(exc))

    @app.exception_handler(ValidationError)
    async def store_validation_handler(request: Request, exc: ValidationError):
        return error_response(HTTP_BAD_REQUEST, "ValidationError", str(exc))

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return error_response(HTTP_NOT_FOUND, exc.__class__.__name__, str(exc))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(HTTP_INTERNAL_SERVER_ERROR, "InternalServerError", "An unexpected error occurred")


def register_front_end(app: FastAPI, views_dir: str, public_dir: str):
    """Sample HTML pages and their static assets, plus the plain-text 404 fallback"""
    if os.path.isdir(public_dir):
        app.mount("/public", StaticFiles(directory=public_dir), name="public")

    def serve_view(name: str):
        path = os.path.join(views_dir, name)
        if not os.path.isfile(path):
            return text_response(TEXT_NOT_FOUND, HTTP_NOT_FOUND)
        return FileResponse(path, media_type="text/html")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        return serve_view("index.html")

    @app.get("/b/{board}/", include_in_schema=False)
    async def serve_board(board: str):
        return serve_view("board.html")

    @app.get("/b/{board}/{thread_id}", include_in_schema=False)
    async def serve_thread(board: str, thread_id: str):
        return serve_view("thread.html")

    # Catch-all route - this must be LAST
    @app.api_route("/{full_path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
    async def not_found(full_path: str):
        return text_response(TEXT_NOT_FOUND, HTTP_NOT_FOUND)


def create_app(database: Optional[DatabaseManager] = None, views_dir: str = VIEWS_DIR,
               public_dir: str = PUBLIC_DIR) -> FastAPI:
    """Build the message board application around a thread store.

    The store is opened on startup and closed on shutdown. When no store is
    given one is created for ``DB_PATH``.
    """
    app = FastAPI(title="Message Board API", description="Anonymous threads and replies by board", version="1.0.0")
    app.state.db = database if database is not None else DatabaseManager(DB_PATH)

    app.add_middleware(GZipMiddleware, minimum_size=GZIP_MIN_SIZE)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"]
    )

    register_exception_handlers(app)
    for router in get_all_routers():
        app.include_router(router)
    register_front_end(app, views_dir, public_dir)

    @app.on_event("startup")
    async def startup_event():
        await app.state.db.initialize()

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.db.close()

    return app


app = create_app()

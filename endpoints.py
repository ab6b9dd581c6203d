import json
import logging
from typing import List, Optional, Type, TypeVar

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from config import (TEXT_SUCCESS, TEXT_REPORTED, TEXT_INCORRECT_PASSWORD,
                    TEXT_THREAD_NOT_FOUND, TEXT_REPLY_NOT_FOUND, HTTP_NOT_FOUND)
from database import DatabaseManager, DeleteOutcome, timestamp
from exceptions import Exceptions, ReplyNotFound, ThreadNotFound, ValidationError
from models import (ThreadCreate, ThreadDelete, ThreadReport, ReplyCreate, ReplyReport, ReplyDelete,
                    ThreadSummary, ThreadDetail, ThreadRecord, ThreadCreatedResponse, ReplyCreatedResponse)
from threads import project_board_summary, project_thread_detail, project_thread_record, project_reply

logger = logging.getLogger(__name__)

BodyModel = TypeVar("BodyModel", bound=BaseModel)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_db(request: Request) -> DatabaseManager:
    return request.app.state.db


async def read_payload(request: Request) -> dict:
    """Request body as a flat key/value map, from either a form or a JSON object"""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    body = await request.body()
    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except ValueError:
        raise ValidationError("Request body must be JSON or form data")
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def parse_body(model: Type[BodyModel], payload: dict) -> BodyModel:
    # pydantic.ValidationError is turned into a 400 by the app's handler
    return model.model_validate(payload)


def text_response(text: str, status_code: int = 200) -> PlainTextResponse:
    return PlainTextResponse(text, status_code=status_code)


def delete_response(outcome: DeleteOutcome) -> PlainTextResponse:
    if outcome is DeleteOutcome.WRONG_PASSWORD:
        return text_response(TEXT_INCORRECT_PASSWORD)
    return text_response(TEXT_SUCCESS)


# =============================================================================
# THREAD ENDPOINTS
# =============================================================================

def create_thread_router() -> APIRouter:
    router = APIRouter(prefix="/api", tags=["threads"])

    @router.get("/threads", response_model=List[ThreadRecord])
    async def list_all_threads(db: DatabaseManager = Depends(get_db)):
        """Every stored thread, unfiltered. For operational inspection only."""
        threads = await db.list_all_threads()
        return [project_thread_record(thread) for thread in threads]

    @router.get("/threads/{board}", response_model=List[ThreadSummary])
    async def get_threads(board: str, db: DatabaseManager = Depends(get_db)):
        """Ten most recently bumped threads with their three latest replies"""
        threads = await db.list_recent_threads(board)
        return project_board_summary(threads)

    @router.post("/threads/{board}", response_model=ThreadCreatedResponse)
    async def create_thread(
        board: str,
        payload: dict = Depends(read_payload),
        db: DatabaseManager = Depends(get_db),
    ):
        thread_data = parse_body(ThreadCreate, payload)
        thread = await db.create_thread(board, thread_data.text, thread_data.delete_password)
        return ThreadCreatedResponse(message="Thread created", thread=project_thread_record(thread))

    @router.put("/threads/{board}")
    async def report_thread(
        board: str,
        payload: dict = Depends(read_payload),
        db: DatabaseManager = Depends(get_db),
    ):
        report = parse_body(ThreadReport, payload)
        try:
            await db.report_thread(report.thread_id)
        except ThreadNotFound:
            return text_response(TEXT_THREAD_NOT_FOUND, HTTP_NOT_FOUND)
        return text_response(TEXT_REPORTED)

    @router.delete("/threads/{board}")
    async def delete_thread(
        board: str,
        payload: dict = Depends(read_payload),
        db: DatabaseManager = Depends(get_db),
    ):
        deletion = parse_body(ThreadDelete, payload)
        try:
            outcome = await db.delete_thread(deletion.thread_id, board, deletion.delete_password)
        except ThreadNotFound:
            return text_response(TEXT_THREAD_NOT_FOUND, HTTP_NOT_FOUND)
        return delete_response(outcome)

    return router


# =============================================================================
# REPLY ENDPOINTS
# =============================================================================

def create_reply_router() -> APIRouter:
    router = APIRouter(prefix="/api", tags=["replies"])

    @router.get("/replies/{board}", response_model=ThreadDetail)
    async def get_thread(
        board: str,
        thread_id: Optional[str] = None,
        db: DatabaseManager = Depends(get_db),
    ):
        """A single thread with every reply"""
        if not thread_id or not thread_id.strip():
            raise Exceptions.thread_id_required()
        # ThreadNotFound becomes a 404 ErrorResponse in the app handler
        thread = await db.get_thread_by_id(thread_id.strip())
        return project_thread_detail(thread)

    @router.post("/replies/{board}", response_model=ReplyCreatedResponse)
    async def create_reply(
        board: str,
        payload: dict = Depends(read_payload),
        db: DatabaseManager = Depends(get_db),
    ):
        reply_data = parse_body(ReplyCreate, payload)
        thread = await db.append_reply(reply_data.thread_id, reply_data.text, reply_data.delete_password)
        return ReplyCreatedResponse(message="Reply created", thread=project_reply(thread.replies[-1]))

    @router.put("/replies/{board}")
    async def report_reply(
        board: str,
        payload: dict = Depends(read_payload),
        db: DatabaseManager = Depends(get_db),
    ):
        report = parse_body(ReplyReport, payload)
        try:
            await db.report_reply(report.thread_id, report.reply_id)
        except ThreadNotFound:
            return text_response(TEXT_THREAD_NOT_FOUND, HTTP_NOT_FOUND)
        except ReplyNotFound:
            return text_response(TEXT_REPLY_NOT_FOUND, HTTP_NOT_FOUND)
        return text_response(TEXT_REPORTED)

    @router.delete("/replies/{board}")
    async def delete_reply(
        board: str,
        payload: dict = Depends(read_payload),
        db: DatabaseManager = Depends(get_db),
    ):
        deletion = parse_body(ReplyDelete, payload)
        try:
            outcome = await db.delete_reply(deletion.thread_id, deletion.reply_id, deletion.delete_password)
        except ThreadNotFound:
            return text_response(TEXT_THREAD_NOT_FOUND, HTTP_NOT_FOUND)
        except ReplyNotFound:
            return text_response(TEXT_REPLY_NOT_FOUND, HTTP_NOT_FOUND)
        return delete_response(outcome)

    return router


# =============================================================================
# UTILITY ENDPOINTS
# =============================================================================

def create_utility_router() -> APIRouter:
    router = APIRouter(tags=["utility"])

    @router.get("/health")
    async def health_check(db: DatabaseManager = Depends(get_db)):
        return {
            "status": "healthy" if db.is_open else "starting",
            "timestamp": timestamp(),
        }

    return router


def get_all_routers() -> List[APIRouter]:
    """Get all API routers"""
    return [
        create_thread_router(),
        create_reply_router(),
        create_utility_router(),
    ]

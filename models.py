from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _require_text(value: str, name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f'{name} must not be empty')
    return value


def _require_id(value: str, name: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f'{name} must not be empty')
    return value


def _require_password(value: str) -> str:
    if not value:
        raise ValueError('delete_password must not be empty')
    return value


class ThreadCreate(BaseModel):
    text: str
    delete_password: str

    @field_validator('text')
    @classmethod
    def validate_text(cls, v):
        return _require_text(v, 'text')

    @field_validator('delete_password')
    @classmethod
    def validate_delete_password(cls, v):
        return _require_password(v)


class ThreadReport(BaseModel):
    thread_id: str

    @field_validator('thread_id')
    @classmethod
    def validate_thread_id(cls, v):
        return _require_id(v, 'thread_id')


class ThreadDelete(ThreadReport):
    delete_password: str

    @field_validator('delete_password')
    @classmethod
    def validate_delete_password(cls, v):
        return _require_password(v)


class ReplyCreate(ThreadReport):
    text: str
    delete_password: str

    @field_validator('text')
    @classmethod
    def validate_text(cls, v):
        return _require_text(v, 'text')

    @field_validator('delete_password')
    @classmethod
    def validate_delete_password(cls, v):
        return _require_password(v)


class ReplyReport(ThreadReport):
    reply_id: str

    @field_validator('reply_id')
    @classmethod
    def validate_reply_id(cls, v):
        return _require_id(v, 'reply_id')


class ReplyDelete(ReplyReport):
    delete_password: str

    @field_validator('delete_password')
    @classmethod
    def validate_delete_password(cls, v):
        return _require_password(v)


class ReplyView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias='_id')
    text: str
    created_on: datetime


class ReplyRecord(ReplyView):
    reported: bool


class ThreadView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias='_id')
    text: str
    created_on: datetime
    bumped_on: datetime
    replies: List[ReplyView]


class ThreadSummary(ThreadView):
    pass


class ThreadDetail(ThreadView):
    pass


class ThreadRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias='_id')
    board: str
    text: str
    created_on: datetime
    bumped_on: datetime
    reported: bool
    replies: List[ReplyRecord]


class ThreadCreatedResponse(BaseModel):
    message: str
    thread: ThreadRecord


class ReplyCreatedResponse(BaseModel):
    message: str
    thread: ReplyView


class ErrorResponse(BaseModel):
    error: str
    message: str

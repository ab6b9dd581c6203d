"""Thread records and the projections applied before they leave the API.

Every projection builds a response model from ``models``; none of those
models declares a ``delete_password`` field, so a password can never be
serialized whatever the caller passes in.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from config import REPLY_PREVIEW_LIMIT
from models import ReplyRecord, ReplyView, ThreadDetail, ThreadRecord, ThreadSummary
from replies import Reply


@dataclass(slots=True)
class Thread:
    thread_id: str
    board: str
    text: str
    created_on: datetime
    bumped_on: datetime
    delete_password: str
    reported: bool = False
    replies: list[Reply] = field(default_factory=list)

    def get_reply(self, reply_id: str) -> Optional[Reply]:
        for reply in self.replies:
            if reply.reply_id == reply_id:
                return reply
        return None

    def recent_replies(self, limit: int = REPLY_PREVIEW_LIMIT) -> list[Reply]:
        """Return the last ``limit`` replies in insertion order."""
        if limit <= 0:
            return []
        return self.replies[-limit:]


def project_reply(reply: Reply) -> ReplyView:
    return ReplyView(id=reply.reply_id, text=reply.text, created_on=reply.created_on)


def project_board_summary(threads: Iterable[Thread]) -> List[ThreadSummary]:
    """Board listing view: store order kept, replies capped to the newest few."""
    return [
        ThreadSummary(
            id=thread.thread_id,
            text=thread.text,
            created_on=thread.created_on,
            bumped_on=thread.bumped_on,
            replies=[project_reply(r) for r in thread.recent_replies()],
        )
        for thread in threads
    ]


def project_thread_detail(thread: Thread) -> ThreadDetail:
    """Single thread view with every reply."""
    return ThreadDetail(
        id=thread.thread_id,
        text=thread.text,
        created_on=thread.created_on,
        bumped_on=thread.bumped_on,
        replies=[project_reply(r) for r in thread.replies],
    )


def project_thread_record(thread: Thread) -> ThreadRecord:
    """Full record for the creator and for diagnostics, moderation flags included."""
    return ThreadRecord(
        id=thread.thread_id,
        board=thread.board,
        text=thread.text,
        created_on=thread.created_on,
        bumped_on=thread.bumped_on,
        reported=thread.reported,
        replies=[
            ReplyRecord(id=r.reply_id, text=r.text, created_on=r.created_on, reported=r.reported)
            for r in thread.replies
        ],
    )

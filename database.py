import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Sequence

import aiosqlite

from config import DELETED_REPLY_TEXT, THREAD_LIST_LIMIT
from exceptions import ReplyNotFound, ThreadNotFound, ValidationError
from replies import Reply
from security import verify_delete_password
from threads import Thread

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS threads (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    thread_id TEXT NOT NULL UNIQUE,
    board TEXT NOT NULL,
    text TEXT NOT NULL,
    created_on REAL NOT NULL,
    bumped_on REAL NOT NULL,
    delete_password TEXT NOT NULL,
    reported BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE INDEX IF NOT EXISTS idx_threads_board_bumped ON threads (board, bumped_on DESC);

CREATE TABLE IF NOT EXISTS replies (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    reply_id TEXT NOT NULL,
    thread_id TEXT NOT NULL REFERENCES threads (thread_id) ON DELETE CASCADE,
    text TEXT NOT NULL,
    created_on REAL NOT NULL,
    delete_password TEXT NOT NULL,
    reported BOOLEAN NOT NULL DEFAULT FALSE,
    UNIQUE (thread_id, reply_id)
);

CREATE INDEX IF NOT EXISTS idx_replies_thread ON replies (thread_id, seq);
"""


def timestamp() -> float:
    return datetime.now(timezone.utc).timestamp()


def to_datetime(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class DeleteOutcome(Enum):
    DELETED = "deleted"
    WRONG_PASSWORD = "wrong_password"


def _require(value: Optional[str], name: str, allow_blank: bool = False) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{name} is required")
    if not allow_blank and not value.strip():
        raise ValidationError(f"{name} must not be blank")
    return value


class DatabaseManager:
    """Thread store backed by a single SQLite connection.

    Construct it, ``await initialize()`` before use and ``await close()`` when
    done. Every mutating method commits before it returns.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None

    async def initialize(self):
        """Open the connection and create the schema if it is missing"""
        if self._conn is not None:
            return
        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA foreign_keys = ON")
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()
        logger.info("Thread store ready at %s", self.db_path)

    async def close(self):
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("Thread store at %s closed", self.db_path)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("DatabaseManager.initialize() has not been awaited")
        return self._conn

    async def execute_query(self, query: str, params: tuple = (), fetch_one: bool = False):
        async with self.conn.execute(query, params) as cursor:
            if fetch_one:
                return await cursor.fetchone()
            return await cursor.fetchall()

    async def execute_write(self, query: str, params: tuple = ()) -> int:
        """Run an INSERT, UPDATE or DELETE and commit; returns affected row count"""
        async with self.conn.execute(query, params) as cursor:
            rowcount = cursor.rowcount
        await self.conn.commit()
        return rowcount

    async def _load_replies(self, thread_ids: Sequence[str]) -> Dict[str, List[Reply]]:
        grouped: Dict[str, List[Reply]] = {thread_id: [] for thread_id in thread_ids}
        if not thread_ids:
            return grouped
        placeholders = ", ".join("?" for _ in thread_ids)
        rows = await self.execute_query(f"""
            SELECT * FROM replies
            WHERE thread_id IN ({placeholders})
            ORDER BY seq ASC
        """, tuple(thread_ids))
        for row in rows:
            grouped[row["thread_id"]].append(Reply(
                reply_id=row["reply_id"],
                thread_id=row["thread_id"],
                text=row["text"],
                created_on=to_datetime(row["created_on"]),
                delete_password=row["delete_password"],
                reported=bool(row["reported"]),
            ))
        return grouped

    async def _build_threads(self, rows) -> List[Thread]:
        replies = await self._load_replies([row["thread_id"] for row in rows])
        return [
            Thread(
                thread_id=row["thread_id"],
                board=row["board"],
                text=row["text"],
                created_on=to_datetime(row["created_on"]),
                bumped_on=to_datetime(row["bumped_on"]),
                delete_password=row["delete_password"],
                reported=bool(row["reported"]),
                replies=replies[row["thread_id"]],
            )
            for row in rows
        ]

    async def create_thread(self, board: str, text: str, delete_password: str) -> Thread:
        """Create a new thread with no replies"""
        board = _require(board, "board").strip()
        text = _require(text, "text")
        delete_password = _require(delete_password, "delete_password", allow_blank=True)

        thread_id = new_id()
        current_time = timestamp()
        await self.execute_write("""
            INSERT INTO threads (thread_id, board, text, created_on, bumped_on, delete_password)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (thread_id, board, text, current_time, current_time, delete_password))
        logger.info("Created thread %s on board %r", thread_id, board)

        return Thread(
            thread_id=thread_id,
            board=board,
            text=text,
            created_on=to_datetime(current_time),
            bumped_on=to_datetime(current_time),
            delete_password=delete_password,
        )

    async def list_recent_threads(self, board: str, limit: int = THREAD_LIST_LIMIT) -> List[Thread]:
        """Most recently bumped threads on a board, newest first"""
        if limit <= 0:
            return []
        rows = await self.execute_query("""
            SELECT * FROM threads
            WHERE board = ?
            ORDER BY bumped_on DESC, seq DESC
            LIMIT ?
        """, (board.strip(), limit))
        return await self._build_threads(rows)

    async def list_all_threads(self) -> List[Thread]:
        """Every stored thread on every board, in insertion order"""
        rows = await self.execute_query("SELECT * FROM threads ORDER BY seq ASC")
        return await self._build_threads(rows)

    async def get_thread_by_id(self, thread_id: str) -> Thread:
        row = await self.execute_query(
            "SELECT * FROM threads WHERE thread_id = ?",
            (thread_id,),
            fetch_one=True
        )
        if not row:
            raise ThreadNotFound(thread_id)
        threads = await self._build_threads([row])
        return threads[0]

    async def append_reply(self, thread_id: str, text: str, delete_password: str) -> Thread:
        """Add a reply to a thread and bump the thread.

        The thread is read, then the reply is inserted and ``bumped_on`` moved
        to the reply's creation time. The two steps are not wrapped in a
        transaction; a thread deleted in between loses the reply.

        Returns the thread as read plus the new reply, which is always
        ``replies[-1]`` of the returned object.
        """
        text = _require(text, "text")
        delete_password = _require(delete_password, "delete_password", allow_blank=True)

        thread = await self.get_thread_by_id(thread_id)

        created_on = timestamp()
        reply = Reply(
            reply_id=new_id(),
            thread_id=thread.thread_id,
            text=text,
            created_on=to_datetime(created_on),
            delete_password=delete_password,
        )
        await self.execute_write("""
            INSERT INTO replies (reply_id, thread_id, text, created_on, delete_password)
            VALUES (?, ?, ?, ?, ?)
        """, (reply.reply_id, thread.thread_id, reply.text, created_on, reply.delete_password))
        await self.execute_write(
            "UPDATE threads SET bumped_on = MAX(bumped_on, ?) WHERE thread_id = ?",
            (created_on, thread.thread_id)
        )
        logger.info("Added reply %s to thread %s", reply.reply_id, thread.thread_id)

        thread.replies.append(reply)
        thread.bumped_on = max(thread.bumped_on, reply.created_on)
        return thread

    async def report_thread(self, thread_id: str) -> Thread:
        """Flag a thread for review; reporting twice is harmless"""
        updated = await self.execute_write(
            "UPDATE threads SET reported = TRUE WHERE thread_id = ?",
            (thread_id,)
        )
        if not updated:
            raise ThreadNotFound(thread_id)
        logger.info("Thread %s reported", thread_id)
        return await self.get_thread_by_id(thread_id)

    async def report_reply(self, thread_id: str, reply_id: str) -> Thread:
        """Flag a reply for review; reporting twice is harmless"""
        thread = await self.get_thread_by_id(thread_id)
        updated = await self.execute_write(
            "UPDATE replies SET reported = TRUE WHERE thread_id = ? AND reply_id = ?",
            (thread_id, reply_id)
        )
        if not updated:
            raise ReplyNotFound(thread_id, reply_id)
        logger.info("Reply %s in thread %s reported", reply_id, thread_id)
        reply = thread.get_reply(reply_id)
        if reply is not None:
            reply.reported = True
        return thread

    async def delete_thread(self, thread_id: str, board: str, delete_password: str) -> DeleteOutcome:
        """Remove a thread and its replies if the password matches"""
        row = await self.execute_query(
            "SELECT delete_password FROM threads WHERE thread_id = ? AND board = ?",
            (thread_id, board.strip()),
            fetch_one=True
        )
        if not row:
            raise ThreadNotFound(thread_id)

        if not verify_delete_password(delete_password or "", row["delete_password"]):
            logger.debug("Wrong delete password for thread %s", thread_id)
            return DeleteOutcome.WRONG_PASSWORD

        await self.execute_write("DELETE FROM threads WHERE thread_id = ?", (thread_id,))
        logger.info("Deleted thread %s from board %r", thread_id, board)
        return DeleteOutcome.DELETED

    async def delete_reply(self, thread_id: str, reply_id: str, delete_password: str) -> DeleteOutcome:
        """Blank out a reply's text if the password matches; the reply keeps its place"""
        thread_row = await self.execute_query(
            "SELECT thread_id FROM threads WHERE thread_id = ?",
            (thread_id,),
            fetch_one=True
        )
        if not thread_row:
            raise ThreadNotFound(thread_id)

        row = await self.execute_query(
            "SELECT delete_password FROM replies WHERE thread_id = ? AND reply_id = ?",
            (thread_id, reply_id),
            fetch_one=True
        )
        if not row:
            raise ReplyNotFound(thread_id, reply_id)

        if not verify_delete_password(delete_password or "", row["delete_password"]):
            logger.debug("Wrong delete password for reply %s", reply_id)
            return DeleteOutcome.WRONG_PASSWORD

        await self.execute_write(
            "UPDATE replies SET text = ? WHERE thread_id = ? AND reply_id = ?",
            (DELETED_REPLY_TEXT, thread_id, reply_id)
        )
        logger.info("Deleted reply %s in thread %s", reply_id, thread_id)
        return DeleteOutcome.DELETED

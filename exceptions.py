from fastapi import HTTPException, status


class BoardError(Exception):
    """Base class for errors raised by the thread store."""


class ValidationError(BoardError):
    pass


class NotFound(BoardError):
    pass


class ThreadNotFound(NotFound):
    def __init__(self, thread_id: str) -> None:
        super().__init__(f"Thread {thread_id!r} not found")
        self.thread_id = thread_id


class ReplyNotFound(NotFound):
    def __init__(self, thread_id: str, reply_id: str) -> None:
        super().__init__(f"Reply {reply_id!r} not found in thread {thread_id!r}")
        self.thread_id = thread_id
        self.reply_id = reply_id


class Exceptions:
    """Factories for HTTP errors; each call builds a new exception."""

    @staticmethod
    def thread_id_required() -> HTTPException:
        return HTTPException(status.HTTP_400_BAD_REQUEST, "thread_id is required")

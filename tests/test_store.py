# tests/test_store.py
import pytest

from config import DELETED_REPLY_TEXT
from database import DatabaseManager, DeleteOutcome
from exceptions import ReplyNotFound, ThreadNotFound, ValidationError


@pytest.mark.asyncio
async def test_create_thread_starts_unbumped_and_empty(store: DatabaseManager) -> None:
    thread = await store.create_thread("test", "hello", "pw")

    assert thread.thread_id
    assert thread.board == "test"
    assert thread.created_on == thread.bumped_on
    assert thread.replies == []
    assert thread.reported is False

    stored = await store.get_thread_by_id(thread.thread_id)
    assert stored.text == "hello"
    assert stored.delete_password == "pw"


@pytest.mark.asyncio
async def test_create_thread_trims_board(store: DatabaseManager) -> None:
    thread = await store.create_thread("  news ", "hello", "pw")
    assert thread.board == "news"
    assert [t.thread_id for t in await store.list_recent_threads("news")] == [thread.thread_id]


@pytest.mark.asyncio
@pytest.mark.parametrize("board,text,password", [
    ("test", "", "pw"),
    ("test", "   ", "pw"),
    ("test", "hello", ""),
    ("", "hello", "pw"),
    ("test", None, "pw"),
])
async def test_create_thread_rejects_missing_fields(store: DatabaseManager, board, text, password) -> None:
    with pytest.raises(ValidationError):
        await store.create_thread(board, text, password)


@pytest.mark.asyncio
async def test_list_recent_threads_caps_and_sorts(store: DatabaseManager) -> None:
    created = [await store.create_thread("test", f"thread {i}", "pw") for i in range(12)]
    await store.create_thread("other", "elsewhere", "pw")

    threads = await store.list_recent_threads("test")

    assert len(threads) == 10
    assert all(t.board == "test" for t in threads)
    assert [t.thread_id for t in threads] == [t.thread_id for t in reversed(created)][:10]
    bumps = [t.bumped_on for t in threads]
    assert bumps == sorted(bumps, reverse=True)


@pytest.mark.asyncio
async def test_list_recent_threads_unknown_board_is_empty(store: DatabaseManager) -> None:
    assert await store.list_recent_threads("nothing-here") == []


@pytest.mark.asyncio
async def test_append_reply_bumps_thread(store: DatabaseManager) -> None:
    first = await store.create_thread("test", "first", "pw")
    second = await store.create_thread("test", "second", "pw")

    updated = await store.append_reply(first.thread_id, "bump", "rpw")

    reply = updated.replies[-1]
    assert reply.text == "bump"
    assert reply.reported is False
    assert updated.bumped_on == reply.created_on
    assert updated.bumped_on >= updated.created_on

    threads = await store.list_recent_threads("test")
    assert [t.thread_id for t in threads] == [first.thread_id, second.thread_id]
    assert threads[0].bumped_on == reply.created_on


@pytest.mark.asyncio
async def test_append_reply_keeps_insertion_order(store: DatabaseManager) -> None:
    thread = await store.create_thread("test", "hello", "pw")
    for i in range(4):
        await store.append_reply(thread.thread_id, f"reply {i}", "rpw")

    stored = await store.get_thread_by_id(thread.thread_id)
    assert [r.text for r in stored.replies] == ["reply 0", "reply 1", "reply 2", "reply 3"]
    assert len({r.reply_id for r in stored.replies}) == 4


@pytest.mark.asyncio
async def test_append_reply_errors(store: DatabaseManager) -> None:
    thread = await store.create_thread("test", "hello", "pw")

    with pytest.raises(ThreadNotFound):
        await store.append_reply("does-not-exist", "text", "pw")
    with pytest.raises(ValidationError):
        await store.append_reply(thread.thread_id, "", "pw")
    with pytest.raises(ValidationError):
        await store.append_reply(thread.thread_id, "text", "")


@pytest.mark.asyncio
async def test_get_thread_by_unknown_id(store: DatabaseManager) -> None:
    with pytest.raises(ThreadNotFound):
        await store.get_thread_by_id("not-a-real-id")


@pytest.mark.asyncio
async def test_report_thread_is_idempotent(store: DatabaseManager) -> None:
    thread = await store.create_thread("test", "hello", "pw")

    assert (await store.report_thread(thread.thread_id)).reported is True
    assert (await store.report_thread(thread.thread_id)).reported is True

    with pytest.raises(ThreadNotFound):
        await store.report_thread("missing")


@pytest.mark.asyncio
async def test_report_reply_is_idempotent(store: DatabaseManager) -> None:
    thread = await store.create_thread("test", "hello", "pw")
    reply = (await store.append_reply(thread.thread_id, "reply", "rpw")).replies[-1]

    for _ in range(2):
        updated = await store.report_reply(thread.thread_id, reply.reply_id)
        assert updated.get_reply(reply.reply_id).reported is True

    stored = await store.get_thread_by_id(thread.thread_id)
    assert stored.replies[0].reported is True
    assert stored.reported is False


@pytest.mark.asyncio
async def test_report_reply_not_found(store: DatabaseManager) -> None:
    thread = await store.create_thread("test", "hello", "pw")

    with pytest.raises(ThreadNotFound):
        await store.report_reply("missing", "whatever")
    with pytest.raises(ReplyNotFound):
        await store.report_reply(thread.thread_id, "missing")


@pytest.mark.asyncio
async def test_delete_reply_soft_deletes_in_place(store: DatabaseManager) -> None:
    thread = await store.create_thread("test", "hello", "pw")
    for text in ("one", "two", "three"):
        await store.append_reply(thread.thread_id, text, f"{text}-pw")
    before = await store.get_thread_by_id(thread.thread_id)
    target = before.replies[1]
    await store.report_reply(thread.thread_id, target.reply_id)

    outcome = await store.delete_reply(thread.thread_id, target.reply_id, "wrong")
    assert outcome is DeleteOutcome.WRONG_PASSWORD
    assert (await store.get_thread_by_id(thread.thread_id)).replies[1].text == "two"

    outcome = await store.delete_reply(thread.thread_id, target.reply_id, "two-pw")
    assert outcome is DeleteOutcome.DELETED

    after = await store.get_thread_by_id(thread.thread_id)
    assert [r.reply_id for r in after.replies] == [r.reply_id for r in before.replies]
    deleted = after.replies[1]
    assert deleted.text == DELETED_REPLY_TEXT
    assert deleted.created_on == target.created_on
    assert deleted.reported is True
    assert [after.replies[0].text, after.replies[2].text] == ["one", "three"]


@pytest.mark.asyncio
async def test_delete_reply_not_found(store: DatabaseManager) -> None:
    thread = await store.create_thread("test", "hello", "pw")

    with pytest.raises(ThreadNotFound):
        await store.delete_reply("missing", "missing", "pw")
    with pytest.raises(ReplyNotFound):
        await store.delete_reply(thread.thread_id, "missing", "pw")


@pytest.mark.asyncio
async def test_delete_thread(store: DatabaseManager) -> None:
    thread = await store.create_thread("test", "hello", "pw")
    await store.append_reply(thread.thread_id, "reply", "rpw")

    with pytest.raises(ThreadNotFound):
        await store.delete_thread(thread.thread_id, "other-board", "pw")
    assert await store.delete_thread(thread.thread_id, "test", "nope") is DeleteOutcome.WRONG_PASSWORD
    assert await store.delete_thread(thread.thread_id, "test", "pw") is DeleteOutcome.DELETED

    with pytest.raises(ThreadNotFound):
        await store.get_thread_by_id(thread.thread_id)
    orphans = await store.execute_query(
        "SELECT COUNT(*) AS n FROM replies WHERE thread_id = ?", (thread.thread_id,), fetch_one=True
    )
    assert orphans["n"] == 0


@pytest.mark.asyncio
async def test_passwords_compare_verbatim(store: DatabaseManager) -> None:
    thread = await store.create_thread("test", "hello", "Secret ")

    assert await store.delete_thread(thread.thread_id, "test", "secret ") is DeleteOutcome.WRONG_PASSWORD
    assert await store.delete_thread(thread.thread_id, "test", "Secret") is DeleteOutcome.WRONG_PASSWORD
    assert await store.delete_thread(thread.thread_id, "test", "Secret ") is DeleteOutcome.DELETED


@pytest.mark.asyncio
async def test_list_all_threads_spans_boards(store: DatabaseManager) -> None:
    a = await store.create_thread("a", "one", "pw")
    b = await store.create_thread("b", "two", "pw")

    assert [t.thread_id for t in await store.list_all_threads()] == [a.thread_id, b.thread_id]


@pytest.mark.asyncio
async def test_data_survives_reopen(db_path: str) -> None:
    first = DatabaseManager(db_path)
    await first.initialize()
    thread = await first.create_thread("test", "durable", "pw")
    await first.append_reply(thread.thread_id, "reply", "rpw")
    await first.close()

    second = DatabaseManager(db_path)
    await second.initialize()
    try:
        stored = await second.get_thread_by_id(thread.thread_id)
        assert stored.text == "durable"
        assert [r.text for r in stored.replies] == ["reply"]
    finally:
        await second.close()


@pytest.mark.asyncio
async def test_store_must_be_initialized(db_path: str) -> None:
    manager = DatabaseManager(db_path)
    assert manager.is_open is False
    with pytest.raises(RuntimeError):
        await manager.list_all_threads()

"""Tests for MessageStream appends and live feeds."""
import asyncio
from datetime import datetime, timezone

import pytest

from core.errors import InvalidArgument, StoreError
from models.chat import IMAGE_PREVIEW_TEXT, ListingRef

SESSION = "U1_U2_L1"


async def _next(queue: asyncio.Queue, timeout: float = 1.0):
    return await asyncio.wait_for(queue.get(), timeout=timeout)


class TestAppendMessage:
    @pytest.mark.asyncio
    async def test_text_message_updates_preview(self, stream, chat_repo, conversations):
        await conversations.create_session(SESSION, ListingRef(id="L1"), {"U1", "U2"})
        message_id = await stream.append_message(SESSION, "U1", text="hi there")
        stored = await chat_repo.get_session(SESSION)
        assert stored.last_message == "hi there"
        assert chat_repo.messages[-1]["message_id"] == message_id

    @pytest.mark.asyncio
    async def test_image_message_preview_placeholder(self, stream, chat_repo, conversations):
        await conversations.create_session(SESSION, ListingRef(id="L1"), {"U1", "U2"})
        await stream.append_message(SESSION, "U2", image_url="https://img/p.jpg")
        stored = await chat_repo.get_session(SESSION)
        assert stored.last_message == IMAGE_PREVIEW_TEXT
        assert stored.last_message_timestamp > datetime(2020, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text,image_url", [(None, None), ("", ""), ("   ", None)])
    async def test_empty_message_rejected(self, stream, chat_repo, text, image_url):
        with pytest.raises(InvalidArgument):
            await stream.append_message(SESSION, "U1", text=text, image_url=image_url)
        assert chat_repo.messages == []

    @pytest.mark.asyncio
    async def test_ids_increase_with_insertion(self, stream):
        first = await stream.append_message(SESSION, "U1", text="one")
        second = await stream.append_message(SESSION, "U2", text="two")
        assert second > first

    @pytest.mark.asyncio
    async def test_preview_failure_does_not_lose_message(self, stream, chat_repo, conversations):
        async def broken(*args):
            raise StoreError("down")
        conversations.update_last_message_preview = broken
        message_id = await stream.append_message(SESSION, "U1", text="still here")
        assert chat_repo.messages[-1]["message_id"] == message_id


class TestSubscribe:
    @pytest.mark.asyncio
    async def test_append_then_subscribe_round_trip(self, stream):
        before = datetime.now(timezone.utc)
        message_id = await stream.append_message(SESSION, "U1", text="hello")

        updates = asyncio.Queue()
        async with stream.subscribe(SESSION, updates.put_nowait):
            messages = await _next(updates)

        assert [m.message_id for m in messages] == [message_id]
        assert messages[0].sender_id == "U1"
        assert messages[0].text == "hello"
        assert messages[0].image_url is None
        assert messages[0].timestamp >= before

    @pytest.mark.asyncio
    async def test_full_list_in_insertion_order_on_each_change(self, make_stream):
        stream = make_stream(poll_interval=60)
        updates = asyncio.Queue()
        async with stream.subscribe(SESSION, updates.put_nowait):
            assert await _next(updates) == []
            await stream.append_message(SESSION, "U1", text="one")
            assert [m.text for m in await _next(updates)] == ["one"]
            await stream.append_message(SESSION, "U2", image_url="https://img/p.jpg")
            latest = await _next(updates)
        assert [m.text for m in latest] == ["one", None]
        assert latest[1].image_url == "https://img/p.jpg"

    @pytest.mark.asyncio
    async def test_remote_change_picked_up_by_polling(self, stream, chat_repo):
        updates = asyncio.Queue()
        async with stream.subscribe(SESSION, updates.put_nowait):
            assert await _next(updates) == []
            # Written without going through this process's hub
            await chat_repo.insert_message(SESSION, "U2", datetime.now(timezone.utc), text="remote")
            messages = await _next(updates)
        assert [m.text for m in messages] == ["remote"]

    @pytest.mark.asyncio
    async def test_other_sessions_do_not_deliver(self, make_stream):
        stream = make_stream(poll_interval=60)
        updates = asyncio.Queue()
        async with stream.subscribe(SESSION, updates.put_nowait):
            await _next(updates)
            await stream.append_message("other", "U1", text="elsewhere")
            await asyncio.sleep(0.05)
            assert updates.empty()

    @pytest.mark.asyncio
    async def test_async_callback(self, stream):
        received = []

        async def on_update(messages):
            received.append(messages)

        await stream.append_message(SESSION, "U1", text="x")
        subscription = stream.subscribe(SESSION, on_update)
        for _ in range(50):
            if received:
                break
            await asyncio.sleep(0.01)
        await subscription.aclose()
        assert received and received[0][0].text == "x"

    @pytest.mark.asyncio
    async def test_cancel_detaches_feed(self, make_stream, hub):
        stream = make_stream(poll_interval=60)
        updates = asyncio.Queue()
        subscription = stream.subscribe(SESSION, updates.put_nowait)
        await _next(updates)
        assert hub.watcher_count(SESSION) == 1

        subscription.cancel()
        assert not subscription.active
        assert hub.watcher_count(SESSION) == 0

        await stream.append_message(SESSION, "U1", text="after cancel")
        await asyncio.sleep(0.05)
        assert updates.empty()

    @pytest.mark.asyncio
    async def test_scope_exit_releases_feed(self, stream, hub):
        async with stream.subscribe(SESSION, lambda messages: None) as subscription:
            assert subscription.active
        assert not subscription.active
        assert hub.watcher_count(SESSION) == 0

    @pytest.mark.asyncio
    async def test_error_is_terminal(self, stream, chat_repo, hub):
        chat_repo.fail_reads = True
        updates = []
        errors = asyncio.Queue()
        subscription = stream.subscribe(SESSION, updates.append, on_error=errors.put_nowait)

        error = await _next(errors)
        assert isinstance(error, StoreError)
        assert subscription.error is error
        assert not subscription.active
        assert updates == []

        # Not retried once the store recovers
        chat_repo.fail_reads = False
        await stream.append_message(SESSION, "U1", text="later")
        await asyncio.sleep(0.1)
        assert updates == []
        assert errors.empty()
        assert hub.watcher_count(SESSION) == 0

    @pytest.mark.asyncio
    async def test_error_without_handler_is_logged(self, make_stream, chat_repo, caplog):
        chat_repo.fail_reads = True
        stream = make_stream(surface_errors=True)
        subscription = stream.subscribe(SESSION, lambda messages: None)
        for _ in range(50):
            if not subscription.active:
                break
            await asyncio.sleep(0.01)
        assert isinstance(subscription.error, StoreError)
        assert any("stopped" in r.message and r.levelname == "ERROR" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_quiet_errors_logged_at_debug(self, make_stream, chat_repo, caplog):
        chat_repo.fail_reads = True
        stream = make_stream(surface_errors=False)
        subscription = stream.subscribe(SESSION, lambda messages: None)
        for _ in range(50):
            if not subscription.active:
                break
            await asyncio.sleep(0.01)
        assert subscription.error is not None
        assert not any(r.levelname == "ERROR" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_release_survives_failing_callbacks(self, stream, hub):
        def on_update(messages):
            raise RuntimeError("socket closed")

        def on_error(error):
            raise RuntimeError("socket closed again")

        subscription = stream.subscribe(SESSION, on_update, on_error=on_error)
        for _ in range(50):
            if not subscription.active:
                break
            await asyncio.sleep(0.01)

        await subscription.aclose()
        assert isinstance(subscription.error, RuntimeError)
        assert str(subscription.error) == "socket closed"
        assert hub.watcher_count(SESSION) == 0

    @pytest.mark.asyncio
    async def test_scope_exit_does_not_mask_body_error(self, stream):
        def on_error(error):
            raise RuntimeError("handler failed")

        def on_update(messages):
            raise RuntimeError("push failed")

        with pytest.raises(KeyError):
            async with stream.subscribe(SESSION, on_update, on_error=on_error):
                await asyncio.sleep(0.05)
                raise KeyError("disconnect")

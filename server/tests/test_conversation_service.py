"""Tests for ConversationManager: session creation, listing and connect."""
from datetime import datetime, timedelta, timezone

import pytest

from core.errors import InvalidParticipants, NotFound
from models.chat import ListingRef


LISTING = ListingRef(id="L123", image_url="https://img/l.jpg", description="Blue umbrella")


def _session_row(session_id, participants, minutes_ago=0, **extra):
    ts = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago)
    row = {
        "session_id": session_id,
        "post_id": "L1",
        "participants": participants,
        "last_message_timestamp": ts.isoformat(),
    }
    row.update(extra)
    return row


class TestCreateSession:
    @pytest.mark.asyncio
    async def test_writes_metadata(self, conversations, chat_repo):
        session = await conversations.create_session("U1_U2_L123", LISTING, {"U1": True, "U2": True})
        stored = await chat_repo.get_session("U1_U2_L123")
        assert stored.participants == {"U1": True, "U2": True}
        assert stored.post_id == "L123"
        assert stored.post_image_url == "https://img/l.jpg"
        assert stored.post_description == "Blue umbrella"
        assert stored.last_message == ""
        assert session.session_id == "U1_U2_L123"

    @pytest.mark.asyncio
    async def test_accepts_plain_identity_set(self, conversations, chat_repo):
        await conversations.create_session("S", LISTING, {"U1", "U2"})
        assert (await chat_repo.get_session("S")).participants == {"U1": True, "U2": True}

    @pytest.mark.asyncio
    async def test_twice_keeps_shape(self, conversations, chat_repo):
        await conversations.create_session("S", LISTING, {"U1": True, "U2": True})
        first = await chat_repo.get_session("S")
        await conversations.create_session("S", LISTING, {"U1": True, "U2": True})
        second = await chat_repo.get_session("S")
        assert chat_repo.upserts == 2
        for field in ("participants", "post_id", "post_image_url", "post_description"):
            assert getattr(first, field) == getattr(second, field)

    @pytest.mark.asyncio
    async def test_missing_image_stored_blank(self, conversations, chat_repo):
        await conversations.create_session("S", ListingRef(id="L1", description="Keys"), ["U1", "U2"])
        assert (await chat_repo.get_session("S")).post_image_url == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("participants", [{"U1"}, {"U1", "U2", "U3"}, {"U1": True, "U2": False}])
    async def test_needs_two_participants(self, conversations, participants):
        with pytest.raises(InvalidParticipants):
            await conversations.create_session("S", LISTING, participants)


class TestListSessionsFor:
    @pytest.mark.asyncio
    async def test_only_sessions_with_identity(self, conversations, chat_repo):
        chat_repo.sessions = {
            "A": _session_row("A", {"U1": True, "U2": True}),
            "B": _session_row("B", {"U2": True, "U3": True}),
            "C": _session_row("C", {"U1": True, "U3": True}),
        }
        result = await conversations.list_sessions_for("U1")
        assert not result.error
        assert {s.session_id for s in result.sessions} == {"A", "C"}
        assert all(s.has_participant("U1") for s in result.sessions)

    @pytest.mark.asyncio
    async def test_newest_first_and_stable_on_ties(self, conversations, chat_repo):
        chat_repo.sessions = {
            "old": _session_row("old", {"U1": True, "U2": True}, minutes_ago=30),
            "tie1": _session_row("tie1", {"U1": True, "U3": True}, minutes_ago=5),
            "new": _session_row("new", {"U1": True, "U4": True}, minutes_ago=0),
            "tie2": _session_row("tie2", {"U1": True, "U5": True}, minutes_ago=5),
        }
        result = await conversations.list_sessions_for("U1")
        assert [s.session_id for s in result.sessions] == ["new", "tie1", "tie2", "old"]

    @pytest.mark.asyncio
    async def test_store_failure_gives_empty_with_flag(self, conversations, chat_repo):
        chat_repo.fail_reads = True
        result = await conversations.list_sessions_for("U1")
        assert result.sessions == []
        assert result.error is True


class TestUpdatePreview:
    @pytest.mark.asyncio
    async def test_only_preview_fields_change(self, conversations, chat_repo):
        await conversations.create_session("S", LISTING, {"U1", "U2"})
        ts = datetime(2030, 5, 1, tzinfo=timezone.utc)
        await conversations.update_last_message_preview("S", "hello", ts)
        stored = await chat_repo.get_session("S")
        assert stored.last_message == "hello"
        assert stored.last_message_timestamp == ts
        assert stored.participants == {"U1": True, "U2": True}
        assert stored.post_description == "Blue umbrella"


class TestConnect:
    @pytest.mark.asyncio
    async def test_contact_flow(self, conversations, listing_repo, chat_repo):
        listing_repo.add(id="L123", user_id="U2", description="Wallet", item_type="Lost",
                         image_url="https://img/w.jpg")
        session = await conversations.connect("U1", "L123")
        assert session.session_id == "U1_U2_L123"
        assert session.participants == {"U1": True, "U2": True}
        assert "U1_U2_L123" in chat_repo.sessions

    @pytest.mark.asyncio
    async def test_reverse_contact_reuses_session(self, conversations, listing_repo, chat_repo, stream):
        listing_repo.add(id="L1", user_id="U9", description="Keys", item_type="Lost")
        first = await conversations.connect("UA", "L1")
        await stream.append_message(first.session_id, "UA", text="are these yours?")

        again = await conversations.connect("UA", "L1")
        assert again.session_id == first.session_id
        # The existing preview survives a second connect
        assert again.last_message == "are these yours?"
        assert chat_repo.upserts == 1

    @pytest.mark.asyncio
    async def test_found_image_not_denormalized(self, conversations, listing_repo):
        listing_repo.add(id="L5", user_id="U2", description="Ring", item_type="Found",
                         image_url="https://img/secret.jpg")
        session = await conversations.connect("U1", "L5")
        assert session.post_image_url == ""

    @pytest.mark.asyncio
    async def test_contacting_own_listing_rejected(self, conversations, listing_repo):
        listing_repo.add(id="L1", user_id="U1", description="Keys", item_type="Lost")
        with pytest.raises(InvalidParticipants):
            await conversations.connect("U1", "L1")

    @pytest.mark.asyncio
    async def test_unknown_listing(self, conversations):
        with pytest.raises(NotFound):
            await conversations.connect("U1", "missing")

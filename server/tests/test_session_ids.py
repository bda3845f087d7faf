"""Tests for chat session id derivation."""
import pytest

from core.errors import InvalidArgument, InvalidParticipants
from utils.session_ids import chat_route, derive_session_id


class TestDeriveSessionId:
    def test_contact_flow_example(self):
        assert derive_session_id("U1", "U2", "L123") == "U1_U2_L123"

    @pytest.mark.parametrize("a,b", [("U1", "U2"), ("zed", "abe"), ("a", "ab"), ("B", "a")])
    def test_commutative(self, a, b):
        assert derive_session_id(a, b, "L1") == derive_session_id(b, a, "L1")

    def test_smaller_identity_first(self):
        # Plain string comparison: uppercase sorts before lowercase
        assert derive_session_id("b", "A", "L") == "A_b_L"

    def test_reverse_contact_reuses_id(self):
        first = derive_session_id("UA", "U9", "L1")
        reply = derive_session_id("U9", "UA", "L1")
        assert first == reply

    def test_different_counterparts_with_separator_in_ids(self):
        a = "user_1"
        ids = {
            derive_session_id(a, "user_2", "L1"),
            derive_session_id(a, "user_2_x", "L1"),
            derive_session_id(a, "user", "L1"),
            derive_session_id(a, "x_user", "L1"),
        }
        assert len(ids) == 4

    def test_different_listings_differ(self):
        assert derive_session_id("U1", "U2", "L1") != derive_session_id("U1", "U2", "L2")

    def test_self_chat_rejected(self):
        with pytest.raises(InvalidParticipants):
            derive_session_id("U1", "U1", "L1")

    @pytest.mark.parametrize("a,b,listing", [("", "U2", "L1"), ("U1", "", "L1"), ("U1", "U2", "")])
    def test_empty_input_rejected(self, a, b, listing):
        with pytest.raises(InvalidArgument):
            derive_session_id(a, b, listing)

    def test_self_chat_error_is_invalid_argument(self):
        assert issubclass(InvalidParticipants, InvalidArgument)


def test_chat_route():
    assert chat_route("U1_U2_L123") == "chat/U1_U2_L123"

"""Chat session identifier derivation"""
from core.errors import InvalidArgument, InvalidParticipants

SESSION_ID_SEPARATOR = "_"


def derive_session_id(id_a: str, id_b: str, listing_id: str) -> str:
    """
    Build the canonical chat session id for two users and a listing.

    The smaller identity (plain string comparison) always comes first, so
    whichever participant initiates contact lands on the same session.
    """
    if not id_a or not id_b or not listing_id:
        raise InvalidArgument("Participant and listing identifiers must be non-empty")
    if id_a == id_b:
        raise InvalidParticipants("Cannot open a chat session with yourself")

    low, high = (id_a, id_b) if id_a < id_b else (id_b, id_a)
    return SESSION_ID_SEPARATOR.join((low, high, listing_id))


def chat_route(session_id: str) -> str:
    """Navigation route for a chat session."""
    return f"chat/{session_id}"

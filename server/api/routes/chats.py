"""Chat session routes and the live chat feed"""
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from typing import List, Optional
import asyncio
import logging

from pydantic import ValidationError

from api.errors import to_http_exception
from api.middleware.auth_middleware import get_current_user, get_websocket_user
from api.schemas.request_schemas import ConnectRequest, SendMessageRequest, WsInbound
from api.schemas.response_schemas import (
    ChatSessionResponse,
    MessageListResponse,
    MessageResponse,
    MessageSentResponse,
    SessionListResponse,
    WsOutbound,
)
from config.settings import settings
from core.auth_state import AuthEvent, AuthStateChange, AuthStateChannel
from core.dependencies import get_auth_state, get_conversation_manager, get_message_stream
from core.errors import FindrError, InvalidArgument, NotFound, StoreError, Unauthorized
from core.verification import VerificationHandoff
from models.chat import ChatMessage, ChatSession
from models.user import Identity
from services.conversation_service import ConversationManager
from services.message_stream import MessageStream

logger = logging.getLogger(__name__)
router = APIRouter()


async def _require_participant(
    conversations: ConversationManager,
    session_id: str,
    uid: str,
) -> ChatSession:
    session = await conversations.get_session(session_id)
    if session is None:
        raise NotFound("Chat not found")
    if not session.has_participant(uid):
        raise Unauthorized("You are not part of this chat")
    return session


@router.post("/connect", response_model=ChatSessionResponse)
async def connect(
    request: ConnectRequest,
    current_user: Identity = Depends(get_current_user),
    conversations: ConversationManager = Depends(get_conversation_manager),
):
    """Open (or reuse) the chat about a listing ("Connect with Owner")"""
    try:
        session = await conversations.connect(current_user.uid, request.post_id)
        return ChatSessionResponse.from_session(session)
    except FindrError as e:
        raise to_http_exception(e)


@router.get("", response_model=SessionListResponse)
async def list_conversations(
    current_user: Identity = Depends(get_current_user),
    conversations: ConversationManager = Depends(get_conversation_manager),
):
    """The current user's chats, most recent activity first"""
    result = await conversations.list_sessions_for(current_user.uid)
    return SessionListResponse(
        sessions=[ChatSessionResponse.from_session(s) for s in result.sessions],
        error=result.error,
    )


@router.get("/{session_id}", response_model=ChatSessionResponse)
async def get_conversation(
    session_id: str,
    current_user: Identity = Depends(get_current_user),
    conversations: ConversationManager = Depends(get_conversation_manager),
):
    try:
        session = await _require_participant(conversations, session_id, current_user.uid)
        return ChatSessionResponse.from_session(session)
    except FindrError as e:
        raise to_http_exception(e)


@router.get("/{session_id}/messages", response_model=MessageListResponse)
async def list_messages(
    session_id: str,
    current_user: Identity = Depends(get_current_user),
    conversations: ConversationManager = Depends(get_conversation_manager),
    stream: MessageStream = Depends(get_message_stream),
):
    """Messages in insertion order"""
    try:
        await _require_participant(conversations, session_id, current_user.uid)
        messages = await stream.get_messages(session_id)
        return MessageListResponse(messages=[MessageResponse.from_message(m) for m in messages])
    except FindrError as e:
        raise to_http_exception(e)


@router.post("/{session_id}/messages", response_model=MessageSentResponse)
async def send_message(
    session_id: str,
    request: SendMessageRequest,
    current_user: Identity = Depends(get_current_user),
    conversations: ConversationManager = Depends(get_conversation_manager),
    stream: MessageStream = Depends(get_message_stream),
):
    try:
        await _require_participant(conversations, session_id, current_user.uid)
        message_id = await stream.append_message(
            session_id,
            current_user.uid,
            text=request.text,
            image_url=request.image_url,
        )
        return MessageSentResponse(message_id=message_id)
    except FindrError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Send message error: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Message not sent")


# ---------------------------------------------------------------------------
# Live feed
# ---------------------------------------------------------------------------

def _frame(type_: str, **data) -> dict:
    return WsOutbound(type=type_, data=data).model_dump(mode="json")


@router.websocket("/{session_id}/ws")
async def chat_feed(
    websocket: WebSocket,
    session_id: str,
    verification_photo: Optional[str] = Query(None),
    identity: Optional[Identity] = Depends(get_websocket_user),
    conversations: ConversationManager = Depends(get_conversation_manager),
    stream: MessageStream = Depends(get_message_stream),
    auth_state: AuthStateChannel = Depends(get_auth_state),
):
    """
    Live chat screen.

    Pushes the full message list whenever it changes and accepts outgoing
    messages. When opened with ``verification_photo`` the client is offered
    a one-time "Share Verification Photo" action for this connection.
    """
    if identity is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Not signed in")
        return

    try:
        await _require_participant(conversations, session_id, identity.uid)
    except (NotFound, Unauthorized) as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(e))
        return
    except StoreError:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason="Chat unavailable")
        return

    await websocket.accept()
    handoff = VerificationHandoff.from_navigation(verification_photo)

    async def push_messages(messages: List[ChatMessage]) -> None:
        await websocket.send_json(_frame(
            "messages",
            messages=[MessageResponse.from_message(m).model_dump(mode="json") for m in messages],
        ))

    async def push_feed_error(error: Exception) -> None:
        await websocket.send_json(_frame("error", message="Chat updates stopped"))

    async def send(text: Optional[str] = None, image_url: Optional[str] = None) -> None:
        try:
            await stream.append_message(session_id, identity.uid, text=text, image_url=image_url)
        except InvalidArgument as e:
            await websocket.send_json(_frame("error", message=str(e)))
        except StoreError:
            await websocket.send_json(_frame("error", message="Message not sent"))

    signed_out = asyncio.Event()
    loop = asyncio.get_running_loop()

    def on_auth_change(change: AuthStateChange) -> None:
        # Publishers may run outside this socket's event loop
        if change.event == AuthEvent.SIGNED_OUT and change.uid == identity.uid:
            loop.call_soon_threadsafe(signed_out.set)

    if handoff is not None:
        await websocket.send_json(_frame("verification.offer", photo_url=handoff.photo_url))

    feed_error_handler = push_feed_error if settings.SURFACE_SUBSCRIPTION_ERRORS else None
    stop_task = asyncio.create_task(signed_out.wait())
    try:
        with auth_state.subscribe(on_auth_change):
            async with stream.subscribe(session_id, push_messages, on_error=feed_error_handler):
                while True:
                    receive_task = asyncio.create_task(websocket.receive_json())
                    done, _ = await asyncio.wait(
                        {receive_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
                    )
                    if receive_task not in done:
                        receive_task.cancel()
                        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Signed out")
                        break

                    try:
                        inbound = WsInbound.model_validate(receive_task.result())
                    except (ValueError, ValidationError):
                        await websocket.send_json(_frame("error", message="Malformed frame"))
                        continue

                    if inbound.type == "message.send":
                        try:
                            outgoing = SendMessageRequest.model_validate(inbound.data)
                        except ValidationError:
                            await websocket.send_json(_frame("error", message="Malformed frame"))
                            continue
                        await send(text=outgoing.text, image_url=outgoing.image_url)
                    elif inbound.type == "verification.share":
                        if handoff is not None:
                            await handoff.confirm(lambda url: send(image_url=url))
                            await websocket.send_json(_frame("verification.state", state=handoff.state.value))
                    elif inbound.type == "verification.dismiss":
                        if handoff is not None:
                            handoff.discard()
                            await websocket.send_json(_frame("verification.state", state=handoff.state.value))
                    elif inbound.type == "ping":
                        await websocket.send_json(_frame("pong"))
                    else:
                        await websocket.send_json(_frame("error", message=f"Unknown frame type: {inbound.type}"))
    except WebSocketDisconnect:
        logger.debug(f"Chat feed {session_id} disconnected ({identity.uid})")
    finally:
        stop_task.cancel()
        if handoff is not None:
            handoff.discard()

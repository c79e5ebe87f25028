from fastapi import APIRouter, Depends

from src.db.models import UserModel
from src.services.chat_relay import ChatRelay, ChatReply

from ..deps import get_chat_relay, get_current_user
from ..schemas import ERROR_RESPONSES, ChatRequest

router = APIRouter(prefix="/chat", tags=["chat"], responses=ERROR_RESPONSES)


@router.post("", summary="Chat", description="Send a message to the language model, continuing a conversation when conversationId is given", response_model=ChatReply)
def chat(
    payload: ChatRequest,
    user: UserModel = Depends(get_current_user),
    relay: ChatRelay = Depends(get_chat_relay),
):
    # Ownership comes from the token; payload.user_id is never trusted.
    return relay.converse(user.id, payload.message, conversation_id=payload.conversation_id)

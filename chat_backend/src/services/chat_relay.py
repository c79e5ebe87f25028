"""
Chat relay: forwards a user message to the language model together with a
bounded window of the conversation's recent messages, then stores the turn.
"""

import logging
from typing import Any, Dict, List, Optional

from .conversation_service import ConversationService
from .errors import NotFound, ValidationFailure
from .openai_client import OpenAIChatClient
from .schemas import CamelModel

logger = logging.getLogger("uvicorn.error")


class ChatReply(CamelModel):
    reply: str
    conversation_id: Optional[str] = None


# PUBLIC_INTERFACE
class ChatRelay:
    def __init__(
        self,
        conversations: ConversationService,
        provider: OpenAIChatClient,
        model: str = "gpt-4o-mini",
        max_tokens: int = 1000,
        temperature: float = 0.7,
        context_size: int = 10,
    ):
        self.conversations = conversations
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.context_size = context_size

    def converse(self, owner_id: str, user_message: Any, conversation_id: Optional[str] = None) -> ChatReply:
        """Send one user turn to the provider and persist it when a conversation is attached.

        Without a resolvable conversation the exchange is not stored anywhere and
        the reply carries no conversation id. Provider failures propagate unchanged.
        """
        if not isinstance(user_message, str) or not user_message.strip():
            raise ValidationFailure(["Message is required"])

        conversation = self.conversations.find(owner_id, conversation_id) if conversation_id else None

        context: List[Dict[str, str]] = []
        temperature, max_tokens = self.temperature, self.max_tokens
        if conversation is not None:
            recent = conversation.messages[-self.context_size:] if self.context_size > 0 else []
            context = [{"role": m.role, "content": m.content} for m in recent]
            settings = conversation.settings or {}
            temperature = settings.get("temperature", temperature)
            max_tokens = settings.get("maxTokens", max_tokens)
            # Release the read so the provider call does not hold a transaction open
            self.conversations.db.commit()

        completion = self.provider.complete(
            messages=context + [{"role": "user", "content": user_message}],
            model=self.model,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        if conversation is None:
            return ChatReply(reply=completion.content, conversation_id=None)

        try:
            self.conversations.append_message(
                owner_id, conversation.id, "user", user_message,
                model=self.model, tokens=completion.prompt_tokens,
            )
            if completion.content.strip():
                self.conversations.append_message(
                    owner_id, conversation.id, "assistant", completion.content,
                    model=completion.model, tokens=completion.completion_tokens,
                )
        except NotFound:
            logger.warning(f"Conversation {conversation.id} disappeared during a chat turn; reply not stored")
            return ChatReply(reply=completion.content, conversation_id=None)

        return ChatReply(reply=completion.content, conversation_id=conversation.id)

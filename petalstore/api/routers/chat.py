# petalstore/api/routers/chat.py
from typing import List

from fastapi import APIRouter, Depends

from petalstore.api.deps import get_actor, get_admin, get_storefront
from petalstore.domain.errors import Forbidden
from petalstore.domain.schemas import (
    Actor,
    ChatMessage,
    Conversation,
    ConversationStatus,
    ConversationStatusIn,
    ConversationWithMessages,
    MessageIn,
    Role,
    SenderRole,
)
from petalstore.storefront import Storefront

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/conversation", response_model=ConversationWithMessages)
def my_conversation(actor: Actor = Depends(get_actor), storefront: Storefront = Depends(get_storefront)):
    chat = storefront.chat
    conversation = chat.get_or_create_conversation(actor.id)
    return ConversationWithMessages(**conversation.model_dump(), messages=chat.messages(conversation.id))


@router.post("/conversations/{conversation_id}/messages", response_model=ChatMessage, status_code=201)
def send_message(
    conversation_id: str,
    payload: MessageIn,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    sender = SenderRole.ADMIN if actor.role == Role.ADMIN else SenderRole.USER
    if sender == SenderRole.USER:
        conversation = storefront.chat.get_conversation(conversation_id)
        if conversation.user_id != actor.id:
            raise Forbidden("You can only write in your own conversation.")
    return storefront.chat.send_message(conversation_id, actor.id, sender, payload.text, payload.image_url)


@router.get("/conversations", response_model=List[ConversationWithMessages])
def list_conversations(
    status: ConversationStatus | None = None,
    admin: Actor = Depends(get_admin),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.chat.list_conversations(status)


@router.patch("/conversations/{conversation_id}", response_model=Conversation)
def update_conversation(
    conversation_id: str,
    payload: ConversationStatusIn,
    admin: Actor = Depends(get_admin),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.chat.update_status(conversation_id, payload.status)

"""메시지 API v1: 모든 엔드포인트는 호출자 식별 필요"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import get_current_user_id, get_messaging_service
from app.api.v1.schemas import ConversationRequest, MarkAsReadResponse, SendMessageRequest
from app.models.messaging import ConversationItem, ConversationOverview, MessageItem
from app.services.messaging import MessagingService

router = APIRouter(tags=["v1-messages"])


@router.post("/messages/conversations", response_model=ConversationItem)
def get_or_create_conversation(
    body: ConversationRequest,
    user_id: int = Depends(get_current_user_id),
    service: MessagingService = Depends(get_messaging_service),
) -> ConversationItem:
    """구매자(호출자) ↔ 판매자 대화방 조회 또는 생성"""
    conversation = service.get_or_create_conversation(user_id, body.seller_id, body.product_id)
    return ConversationItem.model_validate(conversation)


@router.get("/messages/conversations", response_model=list[ConversationOverview])
def get_user_conversations(
    user_id: int = Depends(get_current_user_id),
    service: MessagingService = Depends(get_messaging_service),
) -> list[ConversationOverview]:
    return service.get_user_conversations(user_id)


@router.get("/messages/conversations/{conversation_id}/messages", response_model=list[MessageItem])
def get_conversation_messages(
    conversation_id: int,
    user_id: int = Depends(get_current_user_id),
    service: MessagingService = Depends(get_messaging_service),
) -> list[MessageItem]:
    messages = service.get_conversation_messages(conversation_id, user_id)
    return [MessageItem.model_validate(m) for m in messages]


@router.post("/messages/conversations/{conversation_id}/messages", response_model=MessageItem)
def send_message(
    conversation_id: int,
    body: SendMessageRequest,
    user_id: int = Depends(get_current_user_id),
    service: MessagingService = Depends(get_messaging_service),
) -> MessageItem:
    message = service.send_message(conversation_id, user_id, body.content, body.receiver_id)
    return MessageItem.model_validate(message)


@router.post("/messages/conversations/{conversation_id}/read", response_model=MarkAsReadResponse)
def mark_as_read(
    conversation_id: int,
    user_id: int = Depends(get_current_user_id),
    service: MessagingService = Depends(get_messaging_service),
) -> MarkAsReadResponse:
    updated = service.mark_as_read(conversation_id, user_id)
    return MarkAsReadResponse(updated=updated)

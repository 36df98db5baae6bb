"""메시지 뷰 모델"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from app.models.views import ProductSummary, UserSummary


class MessageItem(BaseModel):
    """메시지 1건"""

    id: int
    conversation_id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ConversationItem(BaseModel):
    """대화방 기본 필드"""

    id: int
    buyer_id: int
    seller_id: int
    product_id: int | None
    last_message_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ConversationOverview(ConversationItem):
    """대화 목록 1건: 상대방, 상품, 안 읽은 수, 마지막 메시지 포함"""

    other_user: UserSummary | None
    product: ProductSummary | None
    unread_count: int = 0
    last_message: MessageItem | None = None

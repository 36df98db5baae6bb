"""구매자-판매자 메시지 서비스

대화방은 (buyer, seller, product) 조합당 1개. 메시지는 append-only이고
읽음 처리(is_read)만 갱신한다. 모든 조회/전송은 대화 참여자만 가능.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.db.base import utcnow
from app.models.db.marketplace import Product, User
from app.models.db.messaging import Conversation, Message
from app.models.messaging import ConversationItem, ConversationOverview, MessageItem
from app.models.views import ProductSummary, UserSummary
from app.services.errors import ForbiddenError, InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)


class MessagingService:
    """대화 생성 / 전송 / 조회 / 읽음 처리"""

    def __init__(self, db: Session, *, max_length: int | None = None) -> None:
        self._db = db
        self._max_length = max_length or settings.MESSAGE_MAX_LENGTH

    def _get_conversation_for(self, conversation_id: int, user_id: int) -> Conversation:
        conversation = self._db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError("المحادثة غير موجودة")
        if not conversation.has_participant(user_id):
            raise ForbiddenError("لست طرفاً في هذه المحادثة")
        return conversation

    def _find_conversation(
        self, buyer_id: int, seller_id: int, product_id: int | None
    ) -> Conversation | None:
        stmt = select(Conversation).where(
            Conversation.buyer_id == buyer_id,
            Conversation.seller_id == seller_id,
        )
        if product_id is None:
            stmt = stmt.where(Conversation.product_id.is_(None))
        else:
            stmt = stmt.where(Conversation.product_id == product_id)
        return self._db.execute(stmt.limit(1)).scalar_one_or_none()

    def get_or_create_conversation(
        self,
        buyer_id: int,
        seller_id: int,
        product_id: int | None = None,
    ) -> Conversation:
        if buyer_id == seller_id:
            raise InvalidArgumentError("لا يمكنك مراسلة نفسك")
        if self._db.get(User, seller_id) is None:
            raise NotFoundError("البائع غير موجود")
        if product_id is not None:
            product = self._db.get(Product, product_id)
            if product is None:
                raise NotFoundError("المنتج غير موجود")
            if product.seller_id != seller_id:
                raise InvalidArgumentError("المنتج لا يعود لهذا البائع")

        existing = self._find_conversation(buyer_id, seller_id, product_id)
        if existing is not None:
            return existing

        conversation = Conversation(buyer_id=buyer_id, seller_id=seller_id, product_id=product_id)
        self._db.add(conversation)
        try:
            self._db.commit()
        except IntegrityError:
            # 동시 요청이 같은 대화를 먼저 만들었다
            self._db.rollback()
            existing = self._find_conversation(buyer_id, seller_id, product_id)
            if existing is None:
                raise
            logger.debug("대화 생성 경합: 기존 conversation=%s 재사용", existing.id)
            return existing
        self._db.refresh(conversation)
        logger.info(
            "대화 생성: conversation=%s buyer=%s seller=%s product=%s",
            conversation.id, buyer_id, seller_id, product_id,
        )
        return conversation

    def send_message(
        self,
        conversation_id: int,
        sender_id: int,
        content: str,
        receiver_id: int | None = None,
    ) -> Message:
        conversation = self._get_conversation_for(conversation_id, sender_id)
        other = conversation.other_participant(sender_id)
        if receiver_id is not None and receiver_id != other:
            raise InvalidArgumentError("المستلم ليس طرفاً في هذه المحادثة")

        text = (content or "").strip()
        if not text:
            raise InvalidArgumentError("لا يمكن إرسال رسالة فارغة")
        if len(text) > self._max_length:
            raise InvalidArgumentError(f"الرسالة طويلة جداً (الحد الأقصى {self._max_length} حرف)")

        now = utcnow()
        message = Message(
            conversation_id=conversation.id,
            sender_id=sender_id,
            receiver_id=other,
            content=text,
            created_at=now,
            updated_at=now,
        )
        self._db.add(message)
        conversation.last_message_at = now
        self._db.commit()
        self._db.refresh(message)
        return message

    def get_conversation_messages(self, conversation_id: int, user_id: int) -> list[Message]:
        self._get_conversation_for(conversation_id, user_id)
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        return list(self._db.execute(stmt).scalars().all())

    def get_user_conversations(self, user_id: int) -> list[ConversationOverview]:
        """참여 중인 대화 목록, 최근 활동순"""
        stmt = (
            select(Conversation)
            .where(or_(Conversation.buyer_id == user_id, Conversation.seller_id == user_id))
            .order_by(
                Conversation.last_message_at.desc().nullslast(),
                Conversation.created_at.desc(),
                Conversation.id.desc(),
            )
        )
        conversations = list(self._db.execute(stmt).scalars().all())
        if not conversations:
            return []

        ids = [c.id for c in conversations]
        unread_rows = self._db.execute(
            select(Message.conversation_id, func.count(Message.id))
            .where(
                Message.conversation_id.in_(ids),
                Message.receiver_id == user_id,
                Message.is_read.is_(False),
            )
            .group_by(Message.conversation_id)
        ).all()
        unread = {conv_id: count for conv_id, count in unread_rows}

        overviews = []
        for conv in conversations:
            other = self._db.get(User, conv.other_participant(user_id))
            last = self._db.execute(
                select(Message)
                .where(Message.conversation_id == conv.id)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(1)
            ).scalar_one_or_none()
            overviews.append(
                ConversationOverview(
                    **ConversationItem.model_validate(conv).model_dump(),
                    other_user=UserSummary.from_user(other) if other else None,
                    product=ProductSummary.model_validate(conv.product) if conv.product else None,
                    unread_count=unread.get(conv.id, 0),
                    last_message=MessageItem.model_validate(last) if last else None,
                )
            )
        return overviews

    def mark_as_read(self, conversation_id: int, user_id: int) -> int:
        """사용자가 받은 안 읽은 메시지를 읽음 처리. 갱신 건수 반환."""
        self._get_conversation_for(conversation_id, user_id)
        result = self._db.execute(
            update(Message)
            .where(
                Message.conversation_id == conversation_id,
                Message.receiver_id == user_id,
                Message.is_read.is_(False),
            )
            .values(is_read=True, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self._db.commit()
        return result.rowcount

"""Conversation / Message ORM 모델

구매자-판매자 1:1 대화. 메시지는 append-only, is_read만 갱신.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.db.base import Base, PrimaryKeyMixin, TimestampMixin


class Conversation(PrimaryKeyMixin, TimestampMixin, Base):
    """대화방"""

    __tablename__ = "conversations"

    buyer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    seller_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    product_id: Mapped[int | None] = mapped_column(ForeignKey("products.id"), nullable=True)
    last_message_at: Mapped[datetime | None] = mapped_column(nullable=True)

    buyer: Mapped[User] = relationship("User", foreign_keys=[buyer_id])
    seller: Mapped[User] = relationship("User", foreign_keys=[seller_id])
    product: Mapped[Product | None] = relationship("Product")
    messages: Mapped[list[Message]] = relationship(
        "Message", back_populates="conversation", order_by="Message.id"
    )

    __table_args__ = (
        UniqueConstraint("buyer_id", "seller_id", "product_id", name="uq_conversations_participants"),
        # NULL은 UNIQUE에서 서로 다른 값이므로 상품 없는 대화는 부분 인덱스로 중복 방지
        Index(
            "uq_conversations_participants_general",
            "buyer_id",
            "seller_id",
            unique=True,
            postgresql_where=text("product_id IS NULL"),
            sqlite_where=text("product_id IS NULL"),
        ),
        Index("ix_conversations_buyer_id", "buyer_id"),
        Index("ix_conversations_seller_id", "seller_id"),
    )

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.buyer_id, self.seller_id)

    def other_participant(self, user_id: int) -> int:
        return self.seller_id if user_id == self.buyer_id else self.buyer_id

    def __repr__(self) -> str:
        return f"<Conversation {self.id} buyer={self.buyer_id} seller={self.seller_id}>"


class Message(PrimaryKeyMixin, TimestampMixin, Base):
    """메시지 1건"""

    __tablename__ = "messages"

    conversation_id: Mapped[int] = mapped_column(ForeignKey("conversations.id"), nullable=False)
    sender_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    receiver_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    conversation: Mapped[Conversation] = relationship("Conversation", back_populates="messages")

    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
        Index("ix_messages_receiver_unread", "receiver_id", "is_read"),
    )

    def __repr__(self) -> str:
        return f"<Message {self.id} conv={self.conversation_id}>"


from app.models.db.marketplace import Product, User  # noqa: E402

"""initial_marketplace_schema

경매 + 메시지 스키마. users/products는 외부 카탈로그 모듈과 공유하는 최소 컬럼만.
auctions 비정규화 컬럼(current_highest_bid, highest_bidder_id, total_bids)은
CHECK 제약으로 하한만 강제하고 나머지는 애플리케이션 트랜잭션이 보장한다.

Revision ID: 3f9a1c2d7e01
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c2d7e01"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """마켓플레이스 스키마 생성"""

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text, nullable=True),
        sa.Column("username", sa.String(64), unique=True, nullable=True),
        sa.Column("seller_name", sa.Text, nullable=True),
        sa.Column("user_type", sa.String(10), nullable=False, server_default="buyer"),
        *_timestamps(),
    )

    # --- products ---
    op.create_table(
        "products",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("seller_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("price", sa.BigInteger, nullable=False),
        sa.Column("condition", sa.String(10), nullable=False, server_default="new"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        *_timestamps(),
    )
    op.create_index("ix_products_seller_id", "products", ["seller_id"])

    # --- auctions ---
    op.create_table(
        "auctions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("product_id", sa.Integer, sa.ForeignKey("products.id"), nullable=False),
        sa.Column("seller_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("start_price", sa.BigInteger, nullable=False),
        sa.Column("current_highest_bid", sa.BigInteger, nullable=False),
        sa.Column("highest_bidder_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("total_bids", sa.Integer, nullable=False, server_default="0"),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("start_price > 0", name="ck_auctions_start_price_positive"),
        sa.CheckConstraint("current_highest_bid >= start_price", name="ck_auctions_highest_ge_start"),
        sa.CheckConstraint("end_time > start_time", name="ck_auctions_time_window"),
        sa.CheckConstraint("total_bids >= 0", name="ck_auctions_total_bids"),
    )
    op.create_index("ix_auctions_status_end_time", "auctions", ["status", "end_time"])
    op.create_index("ix_auctions_product_id", "auctions", ["product_id"])
    op.create_index("ix_auctions_seller_id", "auctions", ["seller_id"])

    # --- bids ---
    op.create_table(
        "bids",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("auction_id", sa.Integer, sa.ForeignKey("auctions.id"), nullable=False),
        sa.Column("bidder_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("bid_amount", sa.BigInteger, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        *_timestamps(),
        sa.CheckConstraint("bid_amount > 0", name="ck_bids_amount_positive"),
    )
    op.create_index("ix_bids_auction_created", "bids", ["auction_id", "created_at"])
    op.create_index("ix_bids_auction_status", "bids", ["auction_id", "status"])
    op.create_index("ix_bids_bidder_id", "bids", ["bidder_id"])

    # --- conversations ---
    op.create_table(
        "conversations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("buyer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("seller_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("product_id", sa.Integer, sa.ForeignKey("products.id"), nullable=True),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("buyer_id", "seller_id", "product_id", name="uq_conversations_participants"),
    )
    op.create_index("ix_conversations_buyer_id", "conversations", ["buyer_id"])
    op.create_index("ix_conversations_seller_id", "conversations", ["seller_id"])
    # NULL은 UNIQUE에서 서로 다른 값이므로 상품 없는 대화는 부분 인덱스로 중복 방지
    op.create_index(
        "uq_conversations_participants_general",
        "conversations",
        ["buyer_id", "seller_id"],
        unique=True,
        postgresql_where=sa.text("product_id IS NULL"),
        sqlite_where=sa.text("product_id IS NULL"),
    )

    # --- messages ---
    op.create_table(
        "messages",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("conversation_id", sa.Integer, sa.ForeignKey("conversations.id"), nullable=False),
        sa.Column("sender_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("receiver_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_messages_conversation_created", "messages", ["conversation_id", "created_at"])
    op.create_index("ix_messages_receiver_unread", "messages", ["receiver_id", "is_read"])


def downgrade() -> None:
    """역순 삭제 (FK 의존성)"""
    op.drop_table("messages")
    op.drop_table("conversations")
    op.drop_table("bids")
    op.drop_table("auctions")
    op.drop_table("products")
    op.drop_table("users")

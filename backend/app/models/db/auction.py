"""Auction ORM 모델

경매 집계 루트. current_highest_bid / highest_bidder_id / total_bids는
bids 테이블에서 유도 가능한 비정규화 컬럼이며, 입찰 INSERT와 같은 트랜잭션에서만 갱신한다.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.auction import AuctionStatus
from app.models.db.base import Base, PrimaryKeyMixin, TimestampMixin


class Auction(PrimaryKeyMixin, TimestampMixin, Base):
    """시간 제한 오름차순 경매"""

    __tablename__ = "auctions"

    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)
    seller_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    start_price: Mapped[int] = mapped_column(BigInteger, nullable=False)  # IQD
    current_highest_bid: Mapped[int] = mapped_column(BigInteger, nullable=False)
    highest_bidder_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    start_time: Mapped[datetime] = mapped_column(nullable=False)
    end_time: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AuctionStatus.ACTIVE.value
    )
    total_bids: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ended_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # 관계
    product: Mapped[Product] = relationship("Product")
    seller: Mapped[User] = relationship("User", foreign_keys=[seller_id])
    bids: Mapped[list[Bid]] = relationship(
        "Bid", back_populates="auction", order_by="Bid.id"
    )

    __table_args__ = (
        CheckConstraint("start_price > 0", name="ck_auctions_start_price_positive"),
        CheckConstraint("current_highest_bid >= start_price", name="ck_auctions_highest_ge_start"),
        CheckConstraint("end_time > start_time", name="ck_auctions_time_window"),
        CheckConstraint("total_bids >= 0", name="ck_auctions_total_bids"),
        Index("ix_auctions_status_end_time", "status", "end_time"),
        Index("ix_auctions_product_id", "product_id"),
        Index("ix_auctions_seller_id", "seller_id"),
    )

    @property
    def status_enum(self) -> AuctionStatus:
        return AuctionStatus(self.status)

    def __repr__(self) -> str:
        return f"<Auction {self.id} {self.status} {self.current_highest_bid}>"


# 순환 참조 해소용 - 모듈 로딩 후 참조
from app.models.db.bid import Bid  # noqa: E402
from app.models.db.marketplace import Product, User  # noqa: E402

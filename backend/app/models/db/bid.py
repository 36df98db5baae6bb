"""Bid ORM 모델

입찰 이력. status 외에는 생성 후 변경하지 않는다.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.auction import BidStatus
from app.models.db.base import Base, PrimaryKeyMixin, TimestampMixin


class Bid(PrimaryKeyMixin, TimestampMixin, Base):
    """경매 입찰 1건"""

    __tablename__ = "bids"

    auction_id: Mapped[int] = mapped_column(ForeignKey("auctions.id"), nullable=False)
    bidder_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    bid_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)  # IQD
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BidStatus.ACTIVE.value)

    # 관계
    auction: Mapped[Auction] = relationship("Auction", back_populates="bids")
    bidder: Mapped[User] = relationship("User")

    __table_args__ = (
        CheckConstraint("bid_amount > 0", name="ck_bids_amount_positive"),
        Index("ix_bids_auction_created", "auction_id", "created_at"),
        Index("ix_bids_auction_status", "auction_id", "status"),
        Index("ix_bids_bidder_id", "bidder_id"),
    )

    def __repr__(self) -> str:
        return f"<Bid {self.id} auction={self.auction_id} {self.bid_amount} {self.status}>"


from app.models.db.auction import Auction  # noqa: E402
from app.models.db.marketplace import User  # noqa: E402

"""User / Product ORM 모델

계정·상품 카탈로그는 외부 모듈 소유. 경매와 메시지가 읽는 최소 컬럼만 정의한다.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.auction import ProductStatus
from app.models.db.base import Base, PrimaryKeyMixin, TimestampMixin


class User(PrimaryKeyMixin, TimestampMixin, Base):
    """마켓플레이스 사용자 (구매자/판매자)"""

    __tablename__ = "users"

    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    username: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    seller_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_type: Mapped[str] = mapped_column(String(10), nullable=False, default="buyer")  # buyer/seller/both

    products: Mapped[list[Product]] = relationship("Product", back_populates="seller")

    @property
    def display_name(self) -> str:
        return self.seller_name or self.name or self.username or f"user-{self.id}"

    def __repr__(self) -> str:
        return f"<User {self.id} {self.username}>"


class Product(PrimaryKeyMixin, TimestampMixin, Base):
    """판매 상품"""

    __tablename__ = "products"

    seller_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)  # IQD
    condition: Mapped[str] = mapped_column(String(10), nullable=False, default="new")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProductStatus.ACTIVE.value
    )

    seller: Mapped[User] = relationship("User", back_populates="products")

    __table_args__ = (
        Index("ix_products_seller_id", "seller_id"),
    )

    def __repr__(self) -> str:
        return f"<Product {self.id} {self.name}>"

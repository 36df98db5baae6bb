"""ORM 모델 패키지

모든 ORM 클래스를 한 곳에서 임포트할 수 있도록 re-export.
Alembic과 database.py에서 `from app.models.db import *` 사용.
"""

from app.models.db.base import Base
from app.models.db.marketplace import Product, User
from app.models.db.auction import Auction
from app.models.db.bid import Bid
from app.models.db.messaging import Conversation, Message

__all__ = [
    "Base",
    "User",
    "Product",
    "Auction",
    "Bid",
    "Conversation",
    "Message",
]

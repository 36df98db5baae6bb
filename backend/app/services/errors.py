"""도메인 예외

서비스 계층에서 발생시키고 API 계층(app.api.errors)에서 HTTP 상태로 변환한다.
message는 사용자에게 그대로 노출되는 아랍어 문구.
"""

from __future__ import annotations


class MarketplaceError(Exception):
    """도메인 예외 베이스"""

    default_message = "حدث خطأ غير متوقع"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__


class NotFoundError(MarketplaceError):
    """대상 엔티티 없음"""

    default_message = "العنصر غير موجود"


class ForbiddenError(MarketplaceError):
    """호출자가 엔티티에 필요한 관계를 갖지 않음 (판매자 아님, 자기 입찰 등)"""

    default_message = "غير مسموح لك بتنفيذ هذا الإجراء"


class InvalidArgumentError(MarketplaceError):
    """값 범위/형식 위반"""

    default_message = "قيمة غير صالحة"


class ConflictError(MarketplaceError):
    """엔티티가 요구 상태가 아님"""

    default_message = "تعارض في حالة العنصر"


class AuctionEndedError(ConflictError):
    """종료/취소/만료된 경매에 대한 입찰"""

    default_message = "المزاد منتهي"

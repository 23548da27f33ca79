from backend.app.models.admin import AdminLoginAttempt, AdminUser
from backend.app.models.admin_audit_log import AdminAuditLog
from backend.app.models.discount_code import DiscountCode
from backend.app.models.enums import (
    DiscountType,
    GiveawayStatus,
    OrderStatus,
    ProductCategory,
    SellRequestStatus,
)
from backend.app.models.giveaway import Giveaway
from backend.app.models.order import Order
from backend.app.models.participant import Participant
from backend.app.models.product import Product
from backend.app.models.sell_request import SellRequest
from backend.app.models.winner import Winner

__all__ = [
    "AdminAuditLog",
    "AdminLoginAttempt",
    "AdminUser",
    "DiscountCode",
    "DiscountType",
    "Giveaway",
    "GiveawayStatus",
    "Order",
    "OrderStatus",
    "Participant",
    "Product",
    "ProductCategory",
    "SellRequest",
    "SellRequestStatus",
    "Winner",
]

from enum import Enum


class ProductCategory(str, Enum):
    accounts = "accounts"
    subscriptions = "subscriptions"
    addons = "addons"


class DiscountType(str, Enum):
    percentage = "percentage"
    fixed = "fixed"


class OrderStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    cancelled = "cancelled"


class SellRequestStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    completed = "completed"


class GiveawayStatus(str, Enum):
    upcoming = "upcoming"
    active = "active"
    ended = "ended"

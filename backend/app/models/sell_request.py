from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db.base import Base
from backend.app.models.enums import ProductCategory, SellRequestStatus


class SellRequest(Base):
    __tablename__ = "sell_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    customer_email: Mapped[str] = mapped_column(Text, nullable=False)
    customer_telegram: Mapped[str] = mapped_column(String(32), nullable=False)
    item_name: Mapped[str] = mapped_column(Text, nullable=False)
    item_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    asking_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    item_category: Mapped[ProductCategory] = mapped_column(
        Enum(ProductCategory, name="product_category"), nullable=False
    )
    status: Mapped[SellRequestStatus] = mapped_column(
        Enum(SellRequestStatus, name="sell_request_status"), nullable=False
    )
    admin_notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


Index("ix_sell_requests_status", SellRequest.status)

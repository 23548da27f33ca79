from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.db.base import Base


class Giveaway(Base):
    __tablename__ = "giveaways"
    __table_args__ = (
        CheckConstraint("max_participants >= 1", name="ck_giveaways_max_participants"),
        CheckConstraint("winner_count >= 1", name="ck_giveaways_winner_count"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    prize: Mapped[str] = mapped_column(Text, nullable=False)
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    winner_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    participants = relationship(
        "Participant",
        back_populates="giveaway",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    winners = relationship(
        "Winner",
        back_populates="giveaway",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


Index("ix_giveaways_created_at", Giveaway.created_at)
Index("ix_giveaways_is_active", Giveaway.is_active)

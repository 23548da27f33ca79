from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.db.base import Base


class Participant(Base):
    __tablename__ = "giveaway_participants"
    __table_args__ = (
        UniqueConstraint(
            "giveaway_id", "handle_key", name="uq_giveaway_participants_giveaway_handle"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    giveaway_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("giveaways.id", ondelete="CASCADE"), nullable=False
    )
    telegram_username: Mapped[str] = mapped_column(String(32), nullable=False)
    # Telegram usernames are case-insensitive; uniqueness is checked on this.
    handle_key: Mapped[str] = mapped_column(String(32), nullable=False)
    email: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    giveaway = relationship("Giveaway", back_populates="participants")


Index("ix_giveaway_participants_giveaway_id", Participant.giveaway_id)

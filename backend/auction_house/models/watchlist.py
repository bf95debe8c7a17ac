"""
Per-user watchlist model
"""
from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from auction_house.database import Base
from auction_house.utils.timeutils import utcnow

if TYPE_CHECKING:
    from auction_house.models.user import User
    from auction_house.models.auction import Auction


class WatchlistItem(Base):
    """Per-user watchlist items - tracks which auctions each user is watching"""
    __tablename__ = "watchlist_items"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Foreign keys
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    auction_id: Mapped[int] = mapped_column(ForeignKey("auctions.id"), index=True)

    # Timestamp
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="watchlist_items")
    auction: Mapped["Auction"] = relationship("Auction", back_populates="watchers")

    __table_args__ = (
        Index('ix_user_watchlist_unique', 'user_id', 'auction_id', unique=True),
    )

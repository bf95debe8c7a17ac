from datetime import datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Integer, Numeric, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from auction_house.database import Base
from auction_house.utils.timeutils import utcnow

if TYPE_CHECKING:
    from auction_house.models.user import User
    from auction_house.models.bid import Bid
    from auction_house.models.watchlist import WatchlistItem


class Auction(Base):
    """Auction listing owned by a single seller"""
    __tablename__ = "auctions"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Owner, immutable after creation
    seller_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    # Listing details
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(String(2000), default="")
    category: Mapped[str] = mapped_column(String(50), index=True)
    condition: Mapped[str] = mapped_column(String(100), default="New")
    location: Mapped[str] = mapped_column(String(500), default="")
    shipping_info: Mapped[str] = mapped_column(String(500), default="")
    tags: Mapped[str] = mapped_column(String(1000), default="")

    # Pricing
    starting_price: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    reserve_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2), nullable=True)
    current_price: Mapped[Decimal] = mapped_column(Numeric(18, 2))

    # Timing
    start_time: Mapped[datetime] = mapped_column(DateTime, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime, index=True)

    # Flags
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)  # seller-controlled, orthogonal to timing
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String(20), default="Active")  # advisory only, see services.lifecycle
    view_count: Mapped[int] = mapped_column(Integer, default=0)

    # Concurrency token, compared and bumped on every ORM update of the row
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Metadata
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    seller: Mapped["User"] = relationship("User", back_populates="auctions")
    bids: Mapped[list["Bid"]] = relationship(
        "Bid",
        back_populates="auction",
        cascade="all, delete-orphan",
        order_by="Bid.bid_time.desc()",
    )
    images: Mapped[list["AuctionImage"]] = relationship(
        back_populates="auction",
        cascade="all, delete-orphan",
        order_by="AuctionImage.display_order",
    )
    watchers: Mapped[list["WatchlistItem"]] = relationship(
        "WatchlistItem",
        back_populates="auction",
        cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index('ix_auction_active_end_time', 'is_active', 'end_time'),
    )


class AuctionImage(Base):
    """Image attached to an auction; at most one per auction is primary"""
    __tablename__ = "auction_images"

    id: Mapped[int] = mapped_column(primary_key=True)
    auction_id: Mapped[int] = mapped_column(ForeignKey("auctions.id"), index=True)

    image_url: Mapped[str] = mapped_column(String(500))
    alt_text: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    auction: Mapped["Auction"] = relationship(back_populates="images")

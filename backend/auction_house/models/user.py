"""
User accounts. A user is either a Buyer or a Seller, never both.
"""
import enum
from datetime import datetime
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from auction_house.database import Base
from auction_house.utils.timeutils import utcnow

if TYPE_CHECKING:
    from auction_house.models.auction import Auction
    from auction_house.models.bid import Bid
    from auction_house.models.watchlist import WatchlistItem


class AccountType(str, enum.Enum):
    BUYER = "Buyer"
    SELLER = "Seller"


class User(Base):
    """User account for the auction marketplace"""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Authentication
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))

    # Profile
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    account_type: Mapped[str] = mapped_column(String(20), index=True)  # Buyer | Seller, fixed at registration
    agree_to_terms: Mapped[bool] = mapped_column(Boolean, default=False)
    receive_updates: Mapped[bool] = mapped_column(Boolean, default=False)

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, onupdate=utcnow)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    auctions: Mapped[List["Auction"]] = relationship("Auction", back_populates="seller")
    bids: Mapped[List["Bid"]] = relationship("Bid", back_populates="bidder")
    watchlist_items: Mapped[List["WatchlistItem"]] = relationship(
        "WatchlistItem",
        back_populates="user",
        cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        """Partial name shown next to bids, e.g. 'Jane D.'"""
        initial = f" {self.last_name[0]}." if self.last_name else ""
        return f"{self.first_name}{initial}"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

"""
Bid records. Immutable once placed except for is_winning_bid, which only
the bidding engine flips.
"""
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from sqlalchemy import Numeric, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from auction_house.database import Base
from auction_house.utils.timeutils import utcnow

if TYPE_CHECKING:
    from auction_house.models.auction import Auction
    from auction_house.models.user import User


class Bid(Base):
    __tablename__ = "bids"

    id: Mapped[int] = mapped_column(primary_key=True)

    auction_id: Mapped[int] = mapped_column(ForeignKey("auctions.id"), index=True)
    bidder_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    bid_time: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    is_winning_bid: Mapped[bool] = mapped_column(Boolean, default=False)

    auction: Mapped["Auction"] = relationship("Auction", back_populates="bids")
    bidder: Mapped["User"] = relationship("User", back_populates="bids")

    __table_args__ = (
        Index('ix_bid_auction_amount', 'auction_id', 'amount'),
        Index('ix_bid_bidder_time', 'bidder_id', 'bid_time'),
    )

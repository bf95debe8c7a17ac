"""
Read-side bid queries and statistics.

Everything here is read-only; bid writes go through services.bidding.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from auction_house.models import Auction, Bid
from auction_house.services.exceptions import NotFoundError, ValidationError
from auction_house.services.lifecycle import AuctionStatus, auction_status, status_filter
from auction_house.utils.money import to_money
from auction_house.utils.pagination import page_window
from auction_house.utils.timeutils import utcnow

USER_BID_FILTERS = ("active", "won", "lost")


@dataclass(frozen=True)
class BidStatistics:
    auction_id: int
    total_bids: int
    unique_bidders: int
    starting_price: Decimal
    current_price: Decimal
    average_increase: Decimal
    highest_bid: Decimal
    last_bid_time: Optional[datetime]


@dataclass(frozen=True)
class UserBid:
    """A user's bid annotated with the derived status of its auction"""
    bid_id: int
    auction_id: int
    auction_title: str
    amount: Decimal
    bid_time: datetime
    is_winning_bid: bool
    auction_end_time: datetime
    auction_current_price: Decimal
    auction_status: AuctionStatus


@dataclass(frozen=True)
class WinningBid:
    bid_id: int
    auction_id: int
    auction_title: str
    winning_amount: Decimal
    auction_end_time: datetime
    seller_name: str
    seller_email: str
    location: str
    shipping_info: str


@dataclass(frozen=True)
class BiddingSummary:
    total_bids: int
    active_bids: int
    won_auctions: int
    lost_auctions: int
    total_amount_bid: Decimal
    total_amount_won: Decimal
    recent_bids: List[UserBid] = field(default_factory=list)
    recent_wins: List[WinningBid] = field(default_factory=list)


class BidQueryService:
    """Bid history, highest bid and statistics lookups"""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    async def get_auction(self, auction_id: int) -> Auction:
        # The engine writes prices through its own sessions
        auction = await self.db.get(Auction, auction_id, populate_existing=True)
        if auction is None:
            raise NotFoundError("Auction", auction_id)
        return auction

    async def get_highest_bid(self, auction_id: int) -> Optional[Bid]:
        """Highest bid with its bidder loaded, or None when nobody has bid"""
        result = await self.db.execute(
            select(Bid)
            .options(selectinload(Bid.bidder))
            .where(Bid.auction_id == auction_id)
            .order_by(Bid.amount.desc(), Bid.bid_time.asc(), Bid.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_auction_bids(self, auction_id: int, page: int = 1, page_size: int = 50) -> List[Bid]:
        """Bids on an auction, newest first"""
        page, page_size, offset = page_window(page, page_size)
        result = await self.db.execute(
            select(Bid)
            .options(selectinload(Bid.bidder))
            .where(Bid.auction_id == auction_id)
            .order_by(Bid.bid_time.desc(), Bid.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        return list(result.scalars().all())

    async def count_auction_bids(self, auction_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Bid.id)).where(Bid.auction_id == auction_id)
        )
        return result.scalar() or 0

    async def get_bid_statistics(self, auction_id: int) -> BidStatistics:
        auction = await self.get_auction(auction_id)

        result = await self.db.execute(
            select(
                func.count(Bid.id),
                func.count(func.distinct(Bid.bidder_id)),
                func.max(Bid.amount),
                func.max(Bid.bid_time),
            ).where(Bid.auction_id == auction_id)
        )
        total_bids, unique_bidders, highest, last_bid_time = result.one()

        starting_price = to_money(auction.starting_price)
        current_price = to_money(auction.current_price)
        if total_bids:
            average_increase = to_money((current_price - starting_price) / total_bids)
        else:
            average_increase = to_money(0)

        return BidStatistics(
            auction_id=auction_id,
            total_bids=total_bids,
            unique_bidders=unique_bidders,
            starting_price=starting_price,
            current_price=current_price,
            average_increase=average_increase,
            highest_bid=to_money(highest) if highest is not None else starting_price,
            last_bid_time=last_bid_time,
        )

    def _user_bid(self, bid: Bid, now: datetime) -> UserBid:
        return UserBid(
            bid_id=bid.id,
            auction_id=bid.auction_id,
            auction_title=bid.auction.title,
            amount=to_money(bid.amount),
            bid_time=bid.bid_time,
            is_winning_bid=bid.is_winning_bid,
            auction_end_time=bid.auction.end_time,
            auction_current_price=to_money(bid.auction.current_price),
            auction_status=auction_status(bid.auction, now),
        )

    async def get_user_bids(
        self,
        user_id: int,
        page: int = 1,
        page_size: int = 20,
        status: Optional[str] = None,
    ) -> List[UserBid]:
        """
        A user's bids, newest first.

        Args:
            status: optional filter - "active" (auction open for bidding),
                    "won" or "lost" (auction ended)
        """
        now = self.clock()
        query = (
            select(Bid)
            .join(Auction, Bid.auction_id == Auction.id)
            .options(selectinload(Bid.auction))
            .where(Bid.bidder_id == user_id)
        )

        if status:
            status = status.lower()
            if status not in USER_BID_FILTERS:
                raise ValidationError(f"Unknown bid status filter '{status}'")
            if status == "active":
                query = query.where(Auction.is_active.is_(True), Auction.end_time >= now)
            elif status == "won":
                query = query.where(Bid.is_winning_bid.is_(True), status_filter(Auction, AuctionStatus.ENDED, now))
            else:
                query = query.where(Bid.is_winning_bid.is_(False), status_filter(Auction, AuctionStatus.ENDED, now))

        query = query.order_by(Bid.bid_time.desc(), Bid.id.desc())
        if page_size:
            page, page_size, offset = page_window(page, page_size)
            query = query.offset(offset).limit(page_size)

        result = await self.db.execute(query)
        return [self._user_bid(bid, now) for bid in result.scalars().all()]

    async def get_user_winning_bids(self, user_id: int, page: int = 1, page_size: int = 20) -> List[WinningBid]:
        """Winning bids on auctions that have ended, most recently ended first"""
        now = self.clock()
        query = (
            select(Bid)
            .join(Auction, Bid.auction_id == Auction.id)
            .options(selectinload(Bid.auction).selectinload(Auction.seller))
            .where(
                Bid.bidder_id == user_id,
                Bid.is_winning_bid.is_(True),
                status_filter(Auction, AuctionStatus.ENDED, now),
            )
            .order_by(Auction.end_time.desc())
        )
        if page_size:
            page, page_size, offset = page_window(page, page_size)
            query = query.offset(offset).limit(page_size)

        result = await self.db.execute(query)
        return [
            WinningBid(
                bid_id=bid.id,
                auction_id=bid.auction_id,
                auction_title=bid.auction.title,
                winning_amount=to_money(bid.amount),
                auction_end_time=bid.auction.end_time,
                seller_name=bid.auction.seller.full_name,
                seller_email=bid.auction.seller.email,
                location=bid.auction.location or "",
                shipping_info=bid.auction.shipping_info or "",
            )
            for bid in result.scalars().all()
        ]

    async def is_user_winning_bidder(self, auction_id: int, user_id: int) -> bool:
        result = await self.db.execute(
            select(Bid.bidder_id).where(
                Bid.auction_id == auction_id,
                Bid.is_winning_bid.is_(True),
            ).limit(1)
        )
        return result.scalar_one_or_none() == user_id

    async def get_bidding_summary(self, user_id: int) -> BiddingSummary:
        """Totals over all of a user's bids plus the most recent activity"""
        bids = await self.get_user_bids(user_id, page_size=0)
        wins = await self.get_user_winning_bids(user_id, page_size=0)

        ended = [b for b in bids if b.auction_status == AuctionStatus.ENDED]
        return BiddingSummary(
            total_bids=len(bids),
            active_bids=sum(1 for b in bids if b.auction_status == AuctionStatus.ACTIVE),
            won_auctions=len(wins),
            lost_auctions=sum(1 for b in ended if not b.is_winning_bid),
            total_amount_bid=to_money(sum((b.amount for b in bids), Decimal("0"))),
            total_amount_won=to_money(sum((w.winning_amount for w in wins), Decimal("0"))),
            recent_bids=bids[:5],
            recent_wins=wins[:3],
        )

"""
Bidding engine.

A bid placement is one atomic unit against the store: load the auction and
its current highest bid, validate, demote the previous winner, insert the
new winning bid and move the auction price, then commit. Nothing is written
when the bid is rejected.

Concurrent bidders on the same auction are serialized by the auction row's
version column (SQLAlchemy version_id_col). The price update is issued as
UPDATE ... WHERE id = :id AND version = :seen, so a writer that validated
against a stale price matches no row, the flush raises StaleDataError and
the whole protocol is re-run against fresh state. On backends that support
it the auction row is also read FOR UPDATE, which makes the losing writer
wait instead of fail.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from auction_house.config import get_settings
from auction_house.models import Auction, Bid, User
from auction_house.services.bid_validator import BidRejectionReason, validate_bid
from auction_house.services.exceptions import PersistenceError
from auction_house.utils.money import Number, to_money
from auction_house.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class BidOutcome(str, enum.Enum):
    ACCEPTED = "Accepted"
    REJECTED = "ValidationRejected"
    NOT_FOUND = "NotFound"
    CONCURRENCY_CONFLICT = "ConcurrencyConflict"


@dataclass(frozen=True)
class PlacedBid:
    bid_id: int
    auction_id: int
    amount: Decimal
    bid_time: datetime
    is_winning_bid: bool
    bidder_name: str


@dataclass(frozen=True)
class BidResult:
    outcome: BidOutcome
    message: str = ""
    bid: Optional[PlacedBid] = None
    current_price: Optional[Decimal] = None
    reason: Optional[BidRejectionReason] = None
    minimum_amount: Optional[Decimal] = None

    @property
    def accepted(self) -> bool:
        return self.outcome == BidOutcome.ACCEPTED

    @classmethod
    def success(cls, bid: PlacedBid, current_price: Decimal) -> "BidResult":
        return cls(BidOutcome.ACCEPTED, "Bid placed successfully", bid=bid, current_price=current_price)

    @classmethod
    def rejected(
        cls,
        reason: BidRejectionReason,
        message: str,
        minimum_amount: Optional[Decimal] = None,
    ) -> "BidResult":
        return cls(BidOutcome.REJECTED, message, reason=reason, minimum_amount=minimum_amount)

    @classmethod
    def not_found(cls, message: str) -> "BidResult":
        return cls(BidOutcome.NOT_FOUND, message)

    @classmethod
    def conflict(cls) -> "BidResult":
        return cls(
            BidOutcome.CONCURRENCY_CONFLICT,
            "The auction price changed while your bid was processed, please try again",
        )


async def load_highest_bid(session: AsyncSession, auction_id: int) -> Optional[Bid]:
    """Highest amount first, earliest bid wins a tie"""
    result = await session.execute(
        select(Bid)
        .where(Bid.auction_id == auction_id)
        .order_by(Bid.amount.desc(), Bid.bid_time.asc(), Bid.id.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


class BiddingEngine:
    """Places bids as single atomic, per-auction serializable units"""

    def __init__(
        self,
        session_maker: async_sessionmaker,
        clock: Callable[[], datetime] = utcnow,
        conflict_retries: Optional[int] = None,
    ):
        self.session_maker = session_maker
        self.clock = clock
        if conflict_retries is None:
            conflict_retries = get_settings().bid_conflict_retries
        self.conflict_retries = conflict_retries

    async def place_bid(self, auction_id: int, bidder_id: int, amount: Number) -> BidResult:
        """
        Place a bid on an auction.

        Returns a BidResult for every expected outcome (accepted, rejected,
        not found, lost race). Raises PersistenceError when the store fails;
        in that case nothing was written.
        """
        amount = to_money(amount)
        logger.debug(f"Placing bid - auction={auction_id}, bidder={bidder_id}, amount={amount}")

        for attempt in range(self.conflict_retries + 1):
            try:
                return await self._attempt(auction_id, bidder_id, amount)
            except StaleDataError:
                logger.warning(
                    f"Concurrent update on auction {auction_id} while bidder {bidder_id} "
                    f"bid {amount} (attempt {attempt + 1})"
                )

        return BidResult.conflict()

    async def _attempt(self, auction_id: int, bidder_id: int, amount: Decimal) -> BidResult:
        async with self.session_maker() as session:
            try:
                result = await self._apply(session, auction_id, bidder_id, amount)
                if result.accepted:
                    await session.commit()
                    logger.info(
                        f"Bid placed - auction={auction_id}, bidder={bidder_id}, "
                        f"amount={amount}, bid_id={result.bid.bid_id}"
                    )
                else:
                    await session.rollback()
                return result
            except StaleDataError:
                await session.rollback()
                raise
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Error placing bid on auction {auction_id} by user {bidder_id}", exc_info=True)
                raise PersistenceError() from e

    async def _apply(
        self,
        session: AsyncSession,
        auction_id: int,
        bidder_id: int,
        amount: Decimal,
    ) -> BidResult:
        result = await session.execute(
            select(Auction).where(Auction.id == auction_id).with_for_update()
        )
        auction = result.scalar_one_or_none()
        if auction is None:
            return BidResult.not_found(f"Auction with ID {auction_id} not found")

        highest = await load_highest_bid(session, auction_id)

        bidder = await session.get(User, bidder_id)
        if bidder is None:
            return BidResult.not_found(f"Bidder with ID {bidder_id} not found")

        now = self.clock()
        decision = validate_bid(auction, highest, bidder_id, bidder.account_type, amount, now)
        if not decision.accepted:
            logger.info(
                f"Bid rejected - auction={auction_id}, bidder={bidder_id}, "
                f"amount={amount}, reason={decision.reason.value}"
            )
            return BidResult.rejected(decision.reason, decision.message, decision.minimum_amount)

        if highest is not None:
            highest.is_winning_bid = False

        bid = Bid(
            auction_id=auction_id,
            bidder_id=bidder_id,
            amount=amount,
            bid_time=now,
            is_winning_bid=True,
        )
        session.add(bid)

        auction.current_price = amount
        auction.updated_at = now

        # Version mismatch surfaces here as StaleDataError
        await session.flush()

        placed = PlacedBid(
            bid_id=bid.id,
            auction_id=auction_id,
            amount=amount,
            bid_time=now,
            is_winning_bid=True,
            bidder_name=bidder.display_name,
        )
        return BidResult.success(placed, amount)


"""
Bid acceptance rules.

validate_bid is a pure function of an auction snapshot, the current
highest bid, the bidder and the clock. It never touches the database, so
the bidding engine can call it inside its transaction and the rules can
be tested without one.
"""
import enum
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from auction_house.models import AccountType
from auction_house.utils.money import to_money, format_money


class BidRejectionReason(str, enum.Enum):
    AUCTION_INACTIVE = "AuctionInactive"
    NOT_STARTED = "NotStarted"
    ENDED = "Ended"
    SELF_BID = "SelfBid"
    ROLE_FORBIDDEN = "RoleForbidden"
    AMOUNT_TOO_LOW = "AmountTooLow"
    ALREADY_HIGHEST_BIDDER = "AlreadyHighestBidder"


@dataclass(frozen=True)
class BidDecision:
    accepted: bool
    reason: Optional[BidRejectionReason] = None
    message: str = ""
    minimum_amount: Optional[Decimal] = None

    @classmethod
    def accept(cls) -> "BidDecision":
        return cls(accepted=True)

    @classmethod
    def reject(
        cls,
        reason: BidRejectionReason,
        message: str,
        minimum_amount: Optional[Decimal] = None,
    ) -> "BidDecision":
        return cls(accepted=False, reason=reason, message=message, minimum_amount=minimum_amount)


def minimum_bid_amount(auction, highest_bid) -> Decimal:
    """Amount a new bid has to exceed"""
    floor = to_money(auction.starting_price)
    if highest_bid is not None:
        return max(to_money(highest_bid.amount), floor)
    return floor


def validate_bid(
    auction,
    highest_bid,
    bidder_id: int,
    bidder_role: str,
    amount: Decimal,
    now: datetime,
) -> BidDecision:
    """
    Decide whether a bid is accepted.

    Checks run in a fixed order and the first failure wins.

    Args:
        auction: auction snapshot (or None when it does not exist)
        highest_bid: current highest bid on the auction, or None
        bidder_id: ID of the user placing the bid
        bidder_role: bidder's account type
        amount: proposed amount
        now: current UTC time
    """
    if auction is None or not auction.is_active:
        return BidDecision.reject(BidRejectionReason.AUCTION_INACTIVE, "This auction is not active")

    if now < auction.start_time:
        return BidDecision.reject(BidRejectionReason.NOT_STARTED, "This auction has not started yet")

    if now > auction.end_time:
        return BidDecision.reject(BidRejectionReason.ENDED, "This auction has already ended")

    if bidder_id == auction.seller_id:
        return BidDecision.reject(BidRejectionReason.SELF_BID, "Sellers cannot bid on their own auctions")

    if bidder_role != AccountType.BUYER.value:
        return BidDecision.reject(BidRejectionReason.ROLE_FORBIDDEN, "Only buyers can place bids")

    minimum = minimum_bid_amount(auction, highest_bid)
    if to_money(amount) <= minimum:
        return BidDecision.reject(
            BidRejectionReason.AMOUNT_TOO_LOW,
            f"Bid must be higher than current highest bid of {format_money(minimum)}",
            minimum_amount=minimum,
        )

    if highest_bid is not None and highest_bid.bidder_id == bidder_id:
        return BidDecision.reject(
            BidRejectionReason.ALREADY_HIGHEST_BIDDER,
            "You are already the highest bidder on this auction",
        )

    return BidDecision.accept()

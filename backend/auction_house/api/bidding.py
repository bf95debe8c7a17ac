"""
Bidding REST API endpoints
"""
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from auction_house.database import get_db
from auction_house.api.deps import get_bidding_engine, get_current_user
from auction_house.models import Bid, User
from auction_house.services.bid_queries import BidQueryService
from auction_house.services.bid_validator import BidRejectionReason
from auction_house.services.bidding import BidOutcome, BiddingEngine
from auction_house.services.lifecycle import AuctionStatus

router = APIRouter(prefix="/api/bidding", tags=["bidding"])

OUTCOME_STATUS = {
    BidOutcome.REJECTED: status.HTTP_400_BAD_REQUEST,
    BidOutcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    BidOutcome.CONCURRENCY_CONFLICT: status.HTTP_409_CONFLICT,
}


class PlaceBidRequest(BaseModel):
    amount: Decimal = Field(gt=0, le=Decimal("999999.99"), decimal_places=2)


class BidResponse(BaseModel):
    bid_id: int
    auction_id: int
    amount: Decimal
    bid_time: datetime
    is_winning_bid: bool
    bidder_name: str


class PlaceBidResponse(BaseModel):
    outcome: str
    message: str
    bid: BidResponse
    current_price: Decimal


class BidRejectedResponse(BaseModel):
    outcome: str
    message: str
    reason: Optional[str] = None
    minimum_amount: Optional[Decimal] = None


class BidStatisticsResponse(BaseModel):
    auction_id: int
    total_bids: int
    unique_bidders: int
    starting_price: Decimal
    current_price: Decimal
    average_increase: Decimal
    highest_bid: Decimal
    last_bid_time: Optional[datetime] = None


class UserBidResponse(BaseModel):
    bid_id: int
    auction_id: int
    auction_title: str
    amount: Decimal
    bid_time: datetime
    is_winning_bid: bool
    auction_end_time: datetime
    auction_current_price: Decimal
    auction_status: AuctionStatus


class WinningBidResponse(BaseModel):
    bid_id: int
    auction_id: int
    auction_title: str
    winning_amount: Decimal
    auction_end_time: datetime
    seller_name: str
    seller_email: str
    location: str
    shipping_info: str


class BiddingSummaryResponse(BaseModel):
    total_bids: int
    active_bids: int
    won_auctions: int
    lost_auctions: int
    total_amount_bid: Decimal
    total_amount_won: Decimal
    recent_bids: List[UserBidResponse]
    recent_wins: List[WinningBidResponse]


def bid_from_model(bid: Bid) -> BidResponse:
    return BidResponse(
        bid_id=bid.id,
        auction_id=bid.auction_id,
        amount=bid.amount,
        bid_time=bid.bid_time,
        is_winning_bid=bid.is_winning_bid,
        bidder_name=bid.bidder.display_name,
    )


@router.post(
    "/auctions/{auction_id}/bid",
    response_model=PlaceBidResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": BidRejectedResponse}, 403: {"model": BidRejectedResponse},
               404: {"model": BidRejectedResponse}, 409: {"model": BidRejectedResponse}},
)
async def place_bid(
    auction_id: int,
    request: PlaceBidRequest,
    user: User = Depends(get_current_user),
    engine: BiddingEngine = Depends(get_bidding_engine)
):
    """
    Place a bid on an auction.

    The bidder is always the authenticated user. Rejections carry the
    reason code (AmountTooLow, Ended, ...) and, for AmountTooLow, the
    amount the next bid has to exceed.
    """
    result = await engine.place_bid(auction_id, user.id, request.amount)

    if result.accepted:
        return PlaceBidResponse(
            outcome=result.outcome.value,
            message=result.message,
            bid=BidResponse(**asdict(result.bid)),
            current_price=result.current_price,
        )

    status_code = OUTCOME_STATUS[result.outcome]
    if result.reason == BidRejectionReason.ROLE_FORBIDDEN:
        status_code = status.HTTP_403_FORBIDDEN

    body = BidRejectedResponse(
        outcome=result.outcome.value,
        message=result.message,
        reason=result.reason.value if result.reason else None,
        minimum_amount=result.minimum_amount,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@router.get("/auctions/{auction_id}/bids", response_model=List[BidResponse])
async def get_auction_bids(
    auction_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """Bid history, newest first"""
    bids = await BidQueryService(db).get_auction_bids(auction_id, page, page_size)
    return [bid_from_model(bid) for bid in bids]


@router.get("/auctions/{auction_id}/highest-bid", response_model=Optional[BidResponse])
async def get_highest_bid(
    auction_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Current highest bid, or null when nobody has bid yet"""
    service = BidQueryService(db)
    await service.get_auction(auction_id)
    bid = await service.get_highest_bid(auction_id)
    return bid_from_model(bid) if bid else None


@router.get("/auctions/{auction_id}/stats", response_model=BidStatisticsResponse)
async def get_bid_statistics(
    auction_id: int,
    db: AsyncSession = Depends(get_db)
):
    stats = await BidQueryService(db).get_bid_statistics(auction_id)
    return BidStatisticsResponse(**asdict(stats))


@router.get("/my-bids", response_model=List[UserBidResponse])
async def get_my_bids(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None, description="active, won or lost"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    bids = await BidQueryService(db).get_user_bids(user.id, page, page_size, status)
    return [UserBidResponse(**asdict(b)) for b in bids]


@router.get("/my-wins", response_model=List[WinningBidResponse])
async def get_my_wins(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    wins = await BidQueryService(db).get_user_winning_bids(user.id, page, page_size)
    return [WinningBidResponse(**asdict(w)) for w in wins]


@router.get("/summary", response_model=BiddingSummaryResponse)
async def get_summary(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    summary = await BidQueryService(db).get_bidding_summary(user.id)
    return BiddingSummaryResponse(**asdict(summary))

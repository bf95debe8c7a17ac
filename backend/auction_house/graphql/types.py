"""
GraphQL Types using Strawberry
Converts SQLAlchemy models to GraphQL types
"""
import strawberry
from typing import Optional, List
from datetime import datetime

from auction_house.services.lifecycle import auction_status, image_urls, primary_image_url, time_remaining


@strawberry.type
class AuctionImageType:
    id: int
    image_url: str
    alt_text: Optional[str] = None
    is_primary: bool
    display_order: int


@strawberry.type
class AuctionType:
    """GraphQL type for Auction, with derived lifecycle fields"""
    id: int
    seller_id: int
    seller_name: str
    title: str
    description: str
    category: str
    condition: Optional[str] = None
    location: Optional[str] = None
    shipping_info: Optional[str] = None

    # Pricing
    starting_price: float
    current_price: float
    reserve_price: Optional[float] = None
    total_bids: int = 0

    # Timing
    start_time: datetime
    end_time: datetime
    time_remaining_seconds: int

    # Status
    status: str
    is_active: bool
    is_featured: bool
    is_watched: bool = False
    view_count: int = 0

    # Images
    primary_image_url: Optional[str] = None
    image_urls: List[str]
    images: List[AuctionImageType]

    created_at: datetime


@strawberry.type
class PaginatedAuctions:
    """Paginated list of auctions"""
    items: List[AuctionType]
    total: int
    page: int
    page_size: int
    has_more: bool


@strawberry.type
class BidType:
    id: int
    auction_id: int
    amount: float
    bid_time: datetime
    is_winning_bid: bool
    bidder_name: str


@strawberry.type
class BidStatisticsType:
    auction_id: int
    total_bids: int
    unique_bidders: int
    starting_price: float
    current_price: float
    average_increase: float
    highest_bid: float
    last_bid_time: Optional[datetime] = None


@strawberry.type
class GenericResponse:
    """Generic response for mutations"""
    success: bool
    message: str


def auction_from_model(auction, now: datetime, total_bids: int = 0, is_watched: bool = False) -> AuctionType:
    """Convert an Auction model (seller and images loaded) to its GraphQL type"""
    return AuctionType(
        id=auction.id,
        seller_id=auction.seller_id,
        seller_name=auction.seller.display_name,
        title=auction.title,
        description=auction.description,
        category=auction.category,
        condition=auction.condition,
        location=auction.location,
        shipping_info=auction.shipping_info,
        starting_price=float(auction.starting_price),
        current_price=float(auction.current_price),
        reserve_price=float(auction.reserve_price) if auction.reserve_price is not None else None,
        total_bids=total_bids,
        start_time=auction.start_time,
        end_time=auction.end_time,
        time_remaining_seconds=int(time_remaining(auction, now).total_seconds()),
        status=auction_status(auction, now).value,
        is_active=auction.is_active,
        is_featured=auction.is_featured,
        is_watched=is_watched,
        view_count=auction.view_count,
        primary_image_url=primary_image_url(auction.images),
        image_urls=image_urls(auction.images),
        images=[
            AuctionImageType(
                id=image.id,
                image_url=image.image_url,
                alt_text=image.alt_text,
                is_primary=image.is_primary,
                display_order=image.display_order,
            )
            for image in auction.images
        ],
        created_at=auction.created_at,
    )


def bid_from_model(bid) -> BidType:
    return BidType(
        id=bid.id,
        auction_id=bid.auction_id,
        amount=float(bid.amount),
        bid_time=bid.bid_time,
        is_winning_bid=bid.is_winning_bid,
        bidder_name=bid.bidder.display_name,
    )


def statistics_from_dataclass(stats) -> BidStatisticsType:
    return BidStatisticsType(
        auction_id=stats.auction_id,
        total_bids=stats.total_bids,
        unique_bidders=stats.unique_bidders,
        starting_price=float(stats.starting_price),
        current_price=float(stats.current_price),
        average_increase=float(stats.average_increase),
        highest_bid=float(stats.highest_bid),
        last_bid_time=stats.last_bid_time,
    )

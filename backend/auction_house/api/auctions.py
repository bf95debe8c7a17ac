"""
Auction REST API endpoints
"""
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from auction_house.database import get_db
from auction_house.api.deps import get_current_user, require_seller
from auction_house.api.images import ImageResponse
from auction_house.models import Auction, User
from auction_house.services.auctions import CATEGORIES, AuctionService
from auction_house.services.lifecycle import auction_status, image_urls, primary_image_url, time_remaining
from auction_house.services.watchlist import WatchlistService
from auction_house.utils.timeutils import utcnow

router = APIRouter(prefix="/api/auctions", tags=["auctions"])

MIN_PRICE = Decimal("0.01")
MAX_PRICE = Decimal("999999.99")


class SellerInfo(BaseModel):
    user_id: int
    first_name: str
    last_name: str
    email: str


class AuctionCreateRequest(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10, max_length=2000)
    category: str = Field(min_length=2, max_length=50)
    starting_price: Decimal = Field(ge=MIN_PRICE, le=MAX_PRICE, decimal_places=2)
    reserve_price: Optional[Decimal] = Field(None, ge=MIN_PRICE, le=MAX_PRICE, decimal_places=2)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_days: Optional[int] = Field(None, ge=1, le=30)
    condition: str = Field("New", max_length=100)
    location: str = Field("", max_length=500)
    shipping_info: str = Field("", max_length=500)
    tags: str = Field("", max_length=1000)
    is_featured: bool = False


class AuctionUpdateRequest(BaseModel):
    """Partial update; only fields that are sent are changed"""
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=2000)
    category: Optional[str] = Field(None, min_length=2, max_length=50)
    condition: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=500)
    shipping_info: Optional[str] = Field(None, max_length=500)
    tags: Optional[str] = Field(None, max_length=1000)
    is_featured: Optional[bool] = None
    starting_price: Optional[Decimal] = Field(None, ge=MIN_PRICE, le=MAX_PRICE, decimal_places=2)
    reserve_price: Optional[Decimal] = Field(None, ge=MIN_PRICE, le=MAX_PRICE, decimal_places=2)
    end_time: Optional[datetime] = None


class AuctionListItem(BaseModel):
    id: int
    title: str
    category: str
    starting_price: Decimal
    current_price: Decimal
    start_time: datetime
    end_time: datetime
    is_active: bool
    is_featured: bool
    view_count: int
    total_bids: int
    time_remaining_seconds: int
    status: str
    seller: SellerInfo
    primary_image_url: Optional[str] = None
    is_watched: bool = False


class AuctionResponse(AuctionListItem):
    description: str
    reserve_price: Optional[Decimal] = None
    condition: str
    location: str
    shipping_info: str
    tags: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    images: List[ImageResponse] = []
    image_urls: List[str] = []


class PaginatedAuctions(BaseModel):
    items: List[AuctionListItem]
    total: int
    page: int
    page_size: int
    has_more: bool


class SellerStatisticsResponse(BaseModel):
    total_auctions: int
    active_auctions: int
    ended_auctions: int
    upcoming_auctions: int
    total_revenue: Decimal
    average_selling_price: Decimal
    total_views: int
    featured_auctions: int
    most_popular_category: str


def seller_info(auction: Auction) -> SellerInfo:
    seller = auction.seller
    return SellerInfo(
        user_id=seller.id,
        first_name=seller.first_name,
        last_name=seller.last_name,
        email=seller.email,
    )


def list_item_from_model(auction: Auction, total_bids: int, now: datetime, is_watched: bool = False) -> AuctionListItem:
    return AuctionListItem(
        id=auction.id,
        title=auction.title,
        category=auction.category,
        starting_price=auction.starting_price,
        current_price=auction.current_price,
        start_time=auction.start_time,
        end_time=auction.end_time,
        is_active=auction.is_active,
        is_featured=auction.is_featured,
        view_count=auction.view_count,
        total_bids=total_bids,
        time_remaining_seconds=int(time_remaining(auction, now).total_seconds()),
        status=auction_status(auction, now).value,
        seller=seller_info(auction),
        primary_image_url=primary_image_url(auction.images),
        is_watched=is_watched,
    )


def response_from_model(auction: Auction, total_bids: int, now: datetime, is_watched: bool = False) -> AuctionResponse:
    base = list_item_from_model(auction, total_bids, now, is_watched)
    return AuctionResponse(
        **base.model_dump(),
        description=auction.description,
        reserve_price=auction.reserve_price,
        condition=auction.condition or "",
        location=auction.location or "",
        shipping_info=auction.shipping_info or "",
        tags=auction.tags or "",
        created_at=auction.created_at,
        updated_at=auction.updated_at,
        images=[ImageResponse.model_validate(image) for image in auction.images],
        image_urls=image_urls(auction.images),
    )


async def paginated(service: AuctionService, auctions: List[Auction], total: int, page: int, page_size: int) -> PaginatedAuctions:
    now = utcnow()
    counts = await service.bid_counts(a.id for a in auctions)
    return PaginatedAuctions(
        items=[list_item_from_model(a, counts[a.id], now) for a in auctions],
        total=total,
        page=page,
        page_size=page_size,
        has_more=page * page_size < total,
    )


@router.get("", response_model=PaginatedAuctions)
async def list_auctions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    category: Optional[str] = None,
    search: Optional[str] = None,
    seller_id: Optional[int] = None,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    """
    Public auction listing

    Args:
        category: case-insensitive category name
        search: text searched in title and description
        status: Upcoming, Active or Ended
    """
    service = AuctionService(db)
    auctions, total = await service.list_auctions(
        page=page,
        page_size=page_size,
        category=category,
        search=search,
        seller_id=seller_id,
        status=status,
    )
    return await paginated(service, auctions, total, page, page_size)


@router.post("", response_model=AuctionResponse, status_code=status.HTTP_201_CREATED)
async def create_auction(
    request: AuctionCreateRequest,
    user: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db)
):
    service = AuctionService(db)
    auction = await service.create_auction(
        seller_id=user.id,
        title=request.title,
        description=request.description,
        category=request.category,
        starting_price=request.starting_price,
        reserve_price=request.reserve_price,
        start_time=request.start_time,
        end_time=request.end_time,
        duration_days=request.duration_days or 0,
        condition=request.condition,
        location=request.location,
        shipping_info=request.shipping_info,
        tags=request.tags,
        is_featured=request.is_featured,
    )
    return response_from_model(auction, 0, utcnow())


@router.get("/categories", response_model=List[str])
async def get_categories():
    return CATEGORIES


@router.get("/seller", response_model=PaginatedAuctions)
async def get_my_auctions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    user: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db)
):
    """The current seller's auctions, including deactivated ones"""
    service = AuctionService(db)
    auctions, total = await service.get_seller_auctions(user.id, page, page_size, status)
    return await paginated(service, auctions, total, page, page_size)


@router.get("/seller/stats", response_model=SellerStatisticsResponse)
async def get_seller_stats(
    user: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db)
):
    stats = await AuctionService(db).get_seller_statistics(user.id)
    return SellerStatisticsResponse(**asdict(stats))


@router.get("/watchlist", response_model=List[AuctionListItem])
async def get_watchlist(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    auctions = await WatchlistService(db).list_auctions(user.id)
    counts = await AuctionService(db).bid_counts(a.id for a in auctions)
    now = utcnow()
    return [list_item_from_model(a, counts[a.id], now, is_watched=True) for a in auctions]


@router.get("/{auction_id}", response_model=AuctionResponse)
async def get_auction(
    auction_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Auction detail. Each read counts as a view."""
    service = AuctionService(db)
    auction = await service.get_auction(auction_id)
    counts = await service.bid_counts([auction_id])
    return response_from_model(auction, counts[auction_id], utcnow())


@router.put("/{auction_id}", response_model=AuctionResponse)
async def update_auction(
    auction_id: int,
    request: AuctionUpdateRequest,
    user: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db)
):
    service = AuctionService(db)
    auction = await service.update_auction(auction_id, user.id, request.model_dump(exclude_unset=True))
    counts = await service.bid_counts([auction_id])
    return response_from_model(auction, counts[auction_id], utcnow())


@router.delete("/{auction_id}")
async def delete_auction(
    auction_id: int,
    user: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db)
):
    await AuctionService(db).delete_auction(auction_id, user.id)
    return {"message": "Auction deleted successfully"}


@router.put("/{auction_id}/deactivate", response_model=AuctionResponse)
async def deactivate_auction(
    auction_id: int,
    user: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db)
):
    service = AuctionService(db)
    auction = await service.deactivate_auction(auction_id, user.id)
    counts = await service.bid_counts([auction_id])
    return response_from_model(auction, counts[auction_id], utcnow())


@router.post("/{auction_id}/watchlist")
async def add_to_watchlist(
    auction_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    added = await WatchlistService(db).add(user.id, auction_id)
    message = "Added to watchlist" if added else "Already in watchlist"
    return {"message": message, "added": added}


@router.delete("/{auction_id}/watchlist")
async def remove_from_watchlist(
    auction_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    removed = await WatchlistService(db).remove(user.id, auction_id)
    message = "Removed from watchlist" if removed else "Not in watchlist"
    return {"message": message, "removed": removed}

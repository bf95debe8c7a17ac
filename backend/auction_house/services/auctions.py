"""
Auction management: creation, seller edits, removal and listing queries.

Bid placement is not handled here, see services.bidding.
"""
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from auction_house.config import get_settings
from auction_house.models import AccountType, Auction, Bid, User
from auction_house.services.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from auction_house.services.images import ImageService
from auction_house.services.lifecycle import AuctionStatus, auction_status, parse_status, resolve_status, status_filter
from auction_house.utils.money import to_money
from auction_house.utils.pagination import page_window
from auction_house.utils.timeutils import utcnow, to_utc_naive

logger = logging.getLogger(__name__)

CATEGORIES = [
    "Electronics", "Fashion", "Home & Garden", "Sports & Recreation",
    "Collectibles", "Art", "Jewelry", "Books", "Music", "Movies & TV",
    "Toys & Hobbies", "Health & Beauty", "Automotive", "Business & Industrial",
    "Real Estate", "Services", "Other",
]

DESCRIPTIVE_FIELDS = {"title", "description", "category", "condition", "location", "shipping_info", "tags", "is_featured"}
COMMERCIAL_FIELDS = {"starting_price", "reserve_price", "end_time"}
NULLABLE_FIELDS = {"reserve_price"}


@dataclass(frozen=True)
class SellerStatistics:
    total_auctions: int
    active_auctions: int
    ended_auctions: int
    upcoming_auctions: int
    total_revenue: Decimal
    average_selling_price: Decimal
    total_views: int
    featured_auctions: int
    most_popular_category: str


class AuctionService:
    """Auction CRUD and listing queries"""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock
        self.settings = get_settings()

    def _detail_query(self):
        # Rows may have been changed by other sessions (bids, view counts)
        return (
            select(Auction)
            .options(selectinload(Auction.seller), selectinload(Auction.images))
            .execution_options(populate_existing=True)
        )

    async def _get_owned(self, auction_id: int, seller_id: int, action: str) -> Auction:
        auction = (await self.db.execute(
            self._detail_query().where(Auction.id == auction_id)
        )).scalar_one_or_none()
        if auction is None:
            raise NotFoundError("Auction", auction_id)
        if auction.seller_id != seller_id:
            raise PermissionDeniedError(f"You can only {action} your own auctions")
        return auction

    async def bid_counts(self, auction_ids: Iterable[int]) -> Dict[int, int]:
        """Number of bids per auction, for list views"""
        auction_ids = list(auction_ids)
        if not auction_ids:
            return {}
        result = await self.db.execute(
            select(Bid.auction_id, func.count(Bid.id))
            .where(Bid.auction_id.in_(auction_ids))
            .group_by(Bid.auction_id)
        )
        counts = {auction_id: count for auction_id, count in result.all()}
        return {auction_id: counts.get(auction_id, 0) for auction_id in auction_ids}

    async def create_auction(
        self,
        seller_id: int,
        title: str,
        description: str,
        category: str,
        starting_price,
        end_time: Optional[datetime] = None,
        start_time: Optional[datetime] = None,
        duration_days: int = 0,
        reserve_price=None,
        condition: str = "New",
        location: str = "",
        shipping_info: str = "",
        tags: str = "",
        is_featured: bool = False,
    ) -> Auction:
        """
        Create an auction for a seller.

        end_time may be omitted when duration_days is given; it is then
        counted from the start time. Missing start time means "now".
        """
        seller = await self.db.get(User, seller_id)
        if seller is None:
            raise NotFoundError("User", seller_id)
        if seller.account_type != AccountType.SELLER.value:
            raise PermissionDeniedError("Only sellers can create auctions")

        now = self.clock()
        start_time = to_utc_naive(start_time) or now
        tolerance = timedelta(minutes=self.settings.start_time_tolerance_minutes)
        if start_time < now - tolerance:
            raise ValidationError("Start time cannot be in the past")

        if duration_days and duration_days > 0:
            end_time = start_time + timedelta(days=duration_days)
        end_time = to_utc_naive(end_time)
        if end_time is None:
            raise ValidationError("End time or duration is required")
        if end_time <= start_time:
            raise ValidationError("End time must be after start time")

        starting_price = to_money(starting_price)
        if starting_price < 0:
            raise ValidationError("Starting price cannot be negative")
        if reserve_price is not None:
            reserve_price = to_money(reserve_price)
            if reserve_price < starting_price:
                raise ValidationError("Reserve price cannot be less than starting price")

        auction = Auction(
            seller_id=seller_id,
            title=(title or "").strip(),
            description=(description or "").strip(),
            category=(category or "").strip(),
            condition=(condition or "New").strip(),
            location=(location or "").strip(),
            shipping_info=(shipping_info or "").strip(),
            tags=(tags or "").strip(),
            starting_price=starting_price,
            reserve_price=reserve_price,
            current_price=starting_price,
            start_time=start_time,
            end_time=end_time,
            is_active=True,
            is_featured=is_featured,
            status=resolve_status(start_time, end_time, now).value,
            view_count=0,
            created_at=now,
        )
        self.db.add(auction)
        await self.db.commit()
        logger.info(f"Auction {auction.id} created by seller {seller_id}")

        return await self.get_auction(auction.id, count_view=False)

    async def get_auction(self, auction_id: int, count_view: bool = True) -> Auction:
        """Auction with seller and images loaded"""
        if count_view:
            # Plain table UPDATE so the view counter does not bump the concurrency token
            table = Auction.__table__
            await self.db.execute(
                table.update()
                .where(table.c.id == auction_id)
                .values(view_count=table.c.view_count + 1)
            )
            await self.db.commit()

        result = await self.db.execute(
            self._detail_query()
            .where(Auction.id == auction_id)
        )
        auction = result.scalar_one_or_none()
        if auction is None:
            raise NotFoundError("Auction", auction_id)
        return auction

    async def list_auctions(
        self,
        page: int = 1,
        page_size: int = 20,
        category: Optional[str] = None,
        search: Optional[str] = None,
        seller_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[Auction], int]:
        """
        Public listing of active (not deactivated) auctions, newest first.

        Args:
            category: case-insensitive category match
            search: case-insensitive search in title and description
            seller_id: only this seller's auctions
            status: Upcoming, Active or Ended, resolved from the time window
        """
        filters = [Auction.is_active.is_(True)]
        if category:
            filters.append(func.lower(Auction.category) == category.strip().lower())
        if search:
            search_term = f"%{search.strip()}%"
            filters.append(or_(
                Auction.title.ilike(search_term),
                Auction.description.ilike(search_term),
            ))
        if seller_id is not None:
            filters.append(Auction.seller_id == seller_id)
        filters.extend(self._status_filters(status))

        return await self._paginate(filters, page, page_size)

    async def get_seller_auctions(
        self,
        seller_id: int,
        page: int = 1,
        page_size: int = 20,
        status: Optional[str] = None,
    ) -> Tuple[List[Auction], int]:
        """All of a seller's auctions, deactivated ones included"""
        filters = [Auction.seller_id == seller_id]
        filters.extend(self._status_filters(status))
        if status and status.strip().lower() == "active":
            filters.append(Auction.is_active.is_(True))
        return await self._paginate(filters, page, page_size)

    def _status_filters(self, status: Optional[str]) -> list:
        try:
            parsed = parse_status(status)
        except ValueError as e:
            raise ValidationError(str(e))
        if parsed is None:
            return []
        return [status_filter(Auction, parsed, self.clock())]

    async def _paginate(self, filters: list, page: int, page_size: int) -> Tuple[List[Auction], int]:
        page, page_size, offset = page_window(page, page_size)

        count_result = await self.db.execute(
            select(func.count()).select_from(Auction).where(*filters)
        )
        total = count_result.scalar() or 0

        result = await self.db.execute(
            self._detail_query()
            .where(*filters)
            .order_by(Auction.created_at.desc(), Auction.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def update_auction(self, auction_id: int, seller_id: int, changes: dict) -> Auction:
        """
        Apply a seller's edits.

        Descriptive fields are always editable. Commercial terms (prices and
        end time) are frozen once the auction has started and has a bid.
        """
        auction = await self._get_owned(auction_id, seller_id, "update")
        now = self.clock()

        unknown = set(changes) - DESCRIPTIVE_FIELDS - COMMERCIAL_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        # Only the reserve price can be cleared
        cleared = sorted(k for k, v in changes.items() if v is None and k not in NULLABLE_FIELDS)
        if cleared:
            raise ValidationError(f"Fields cannot be empty: {', '.join(cleared)}")

        commercial = {k: v for k, v in changes.items() if k in COMMERCIAL_FIELDS}
        if commercial:
            bid_count = (await self.bid_counts([auction_id]))[auction_id]
            if bid_count and auction.start_time <= now:
                raise ValidationError("Cannot modify price or end time after bidding has started")

        starting_price = to_money(commercial.get("starting_price", auction.starting_price))
        reserve_price = commercial.get("reserve_price", auction.reserve_price)
        reserve_price = to_money(reserve_price) if reserve_price is not None else None
        end_time = to_utc_naive(commercial.get("end_time", auction.end_time))

        if starting_price < 0:
            raise ValidationError("Starting price cannot be negative")
        if end_time <= auction.start_time:
            raise ValidationError("End time must be after start time")
        if reserve_price is not None and reserve_price < starting_price:
            raise ValidationError("Reserve price cannot be less than starting price")

        for key, value in changes.items():
            if key in DESCRIPTIVE_FIELDS:
                if isinstance(value, str):
                    value = value.strip()
                setattr(auction, key, value)

        if "starting_price" in commercial:
            auction.starting_price = starting_price
            # No bids yet, so the price still tracks the starting price
            auction.current_price = starting_price
        if "reserve_price" in commercial:
            auction.reserve_price = reserve_price
        if "end_time" in commercial:
            auction.end_time = end_time
            auction.status = resolve_status(auction.start_time, end_time, now).value

        auction.updated_at = now
        await self._commit_versioned(auction_id)
        logger.info(f"Auction {auction_id} updated by seller {seller_id}")
        return await self.get_auction(auction_id, count_view=False)

    async def delete_auction(self, auction_id: int, seller_id: int) -> None:
        """Hard delete, only allowed while the auction has no bids"""
        auction = await self._get_owned(auction_id, seller_id, "delete")

        bid_count = (await self.bid_counts([auction_id]))[auction_id]
        if bid_count:
            raise ValidationError("Cannot delete auction with existing bids, deactivate it instead")

        image_urls = [image.image_url for image in auction.images]
        await self.db.delete(auction)
        await self._commit_versioned(auction_id)

        images = ImageService(self.db)
        for image_url in image_urls:
            images.delete_file(image_url)
        logger.info(f"Auction {auction_id} deleted by seller {seller_id}")

    async def deactivate_auction(self, auction_id: int, seller_id: int) -> Auction:
        """Soft delete: stops bidding and hides the auction from public listings"""
        auction = await self._get_owned(auction_id, seller_id, "deactivate")
        now = self.clock()

        if auction_status(auction, now) == AuctionStatus.ENDED:
            raise ValidationError("Cannot deactivate an auction that has already ended")

        auction.is_active = False
        auction.is_featured = False
        auction.status = "Inactive"
        auction.updated_at = now
        await self._commit_versioned(auction_id)
        logger.info(f"Auction {auction_id} deactivated by seller {seller_id}")
        return await self.get_auction(auction_id, count_view=False)

    async def _commit_versioned(self, auction_id: int) -> None:
        try:
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            raise ConflictError(f"Auction {auction_id} was modified concurrently, please retry") from e

    async def get_seller_statistics(self, seller_id: int) -> SellerStatistics:
        result = await self.db.execute(select(Auction).where(Auction.seller_id == seller_id))
        auctions = list(result.scalars().all())
        now = self.clock()

        statuses = [auction_status(a, now) for a in auctions]
        ended = [a for a, s in zip(auctions, statuses) if s == AuctionStatus.ENDED]
        active = [
            a for a, s in zip(auctions, statuses)
            if s == AuctionStatus.ACTIVE and a.is_active
        ]

        revenue = to_money(sum((to_money(a.current_price) for a in ended), Decimal("0")))
        categories = Counter(a.category for a in auctions if a.category)

        return SellerStatistics(
            total_auctions=len(auctions),
            active_auctions=len(active),
            ended_auctions=len(ended),
            upcoming_auctions=statuses.count(AuctionStatus.UPCOMING),
            total_revenue=revenue,
            average_selling_price=to_money(revenue / len(ended)) if ended else to_money(0),
            total_views=sum(a.view_count or 0 for a in auctions),
            featured_auctions=sum(1 for a in auctions if a.is_featured),
            most_popular_category=categories.most_common(1)[0][0] if categories else "None",
        )

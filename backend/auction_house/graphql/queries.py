"""
GraphQL Queries
Define all read operations for the API
"""
import strawberry
from typing import List, Optional
from strawberry.types import Info

from auction_house.graphql.types import (
    AuctionType,
    BidStatisticsType,
    BidType,
    PaginatedAuctions,
    auction_from_model,
    bid_from_model,
    statistics_from_dataclass,
)
from auction_house.services.auctions import CATEGORIES, AuctionService
from auction_house.services.bid_queries import BidQueryService
from auction_house.services.exceptions import NotFoundError
from auction_house.services.watchlist import WatchlistService
from auction_house.utils.timeutils import utcnow


@strawberry.type
class Query:
    @strawberry.field
    async def auctions(
        self,
        info: Info,
        page: int = 1,
        page_size: int = 20,
        category: Optional[str] = None,
        search: Optional[str] = None,
        status: Optional[str] = None,
    ) -> PaginatedAuctions:
        """
        Get paginated list of active auctions, newest first

        Args:
            category: Filter by category (case-insensitive)
            search: Search in title and description
            status: Upcoming, Active or Ended
        """
        db = info.context["db"]
        user = info.context.get("user")

        service = AuctionService(db)
        auctions, total = await service.list_auctions(
            page=page,
            page_size=page_size,
            category=category,
            search=search,
            status=status,
        )
        counts = await service.bid_counts(a.id for a in auctions)

        watched_ids = set()
        if user:
            watched_ids = await WatchlistService(db).watched_auction_ids(user.id)

        now = utcnow()
        page_size = min(max(page_size, 1), service.settings.max_page_size)
        return PaginatedAuctions(
            items=[
                auction_from_model(a, now, counts[a.id], is_watched=(a.id in watched_ids))
                for a in auctions
            ],
            total=total,
            page=max(page, 1),
            page_size=page_size,
            has_more=max(page, 1) * page_size < total,
        )

    @strawberry.field
    async def auction(self, info: Info, id: int) -> Optional[AuctionType]:
        """Get a single auction by ID; counts as a view"""
        db = info.context["db"]
        user = info.context.get("user")

        service = AuctionService(db)
        try:
            auction = await service.get_auction(id)
        except NotFoundError:
            return None

        counts = await service.bid_counts([id])
        is_watched = False
        if user:
            is_watched = id in await WatchlistService(db).watched_auction_ids(user.id)
        return auction_from_model(auction, utcnow(), counts[id], is_watched=is_watched)

    @strawberry.field
    async def auction_bids(
        self,
        info: Info,
        auction_id: int,
        page: int = 1,
        page_size: int = 50,
    ) -> List[BidType]:
        """Bid history for an auction, newest first"""
        bids = await BidQueryService(info.context["db"]).get_auction_bids(auction_id, page, page_size)
        return [bid_from_model(bid) for bid in bids]

    @strawberry.field
    async def bid_statistics(self, info: Info, auction_id: int) -> Optional[BidStatisticsType]:
        try:
            stats = await BidQueryService(info.context["db"]).get_bid_statistics(auction_id)
        except NotFoundError:
            return None
        return statistics_from_dataclass(stats)

    @strawberry.field
    async def categories(self) -> List[str]:
        return list(CATEGORIES)

    @strawberry.field
    async def watchlist(self, info: Info) -> List[AuctionType]:
        """Auctions watched by the current user; empty when not logged in"""
        user = info.context.get("user")
        if not user:
            return []

        db = info.context["db"]
        auctions = await WatchlistService(db).list_auctions(user.id)
        counts = await AuctionService(db).bid_counts(a.id for a in auctions)
        now = utcnow()
        return [auction_from_model(a, now, counts[a.id], is_watched=True) for a in auctions]

"""
Per-user watchlists. Owner-only mutations, no engine involvement.
"""
import logging
from typing import List, Set

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from auction_house.models import Auction, WatchlistItem
from auction_house.services.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class WatchlistService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_item(self, user_id: int, auction_id: int):
        result = await self.db.execute(
            select(WatchlistItem).where(
                WatchlistItem.user_id == user_id,
                WatchlistItem.auction_id == auction_id,
            )
        )
        return result.scalar_one_or_none()

    async def add(self, user_id: int, auction_id: int) -> bool:
        """Watch an auction. Returns False when it was already watched."""
        if await self.db.get(Auction, auction_id) is None:
            raise NotFoundError("Auction", auction_id)

        if await self._get_item(user_id, auction_id):
            return False

        self.db.add(WatchlistItem(user_id=user_id, auction_id=auction_id))
        try:
            await self.db.commit()
        except IntegrityError:
            # Same pair inserted by a concurrent request
            await self.db.rollback()
            return False
        logger.info(f"User {user_id} is now watching auction {auction_id}")
        return True

    async def remove(self, user_id: int, auction_id: int) -> bool:
        """Stop watching an auction. Returns False when it was not watched."""
        item = await self._get_item(user_id, auction_id)
        if item is None:
            return False
        await self.db.delete(item)
        await self.db.commit()
        logger.info(f"User {user_id} stopped watching auction {auction_id}")
        return True

    async def toggle(self, user_id: int, auction_id: int) -> bool:
        """Flip watch state, returning True when the auction is now watched"""
        if await self.remove(user_id, auction_id):
            return False
        await self.add(user_id, auction_id)
        return True

    async def list_auctions(self, user_id: int) -> List[Auction]:
        """Watched auctions, most recently added first"""
        result = await self.db.execute(
            select(Auction)
            .join(WatchlistItem, WatchlistItem.auction_id == Auction.id)
            .options(selectinload(Auction.seller), selectinload(Auction.images))
            .where(WatchlistItem.user_id == user_id)
            .order_by(WatchlistItem.created_at.desc(), WatchlistItem.id.desc())
        )
        return list(result.scalars().all())

    async def watched_auction_ids(self, user_id: int) -> Set[int]:
        result = await self.db.execute(
            select(WatchlistItem.auction_id).where(WatchlistItem.user_id == user_id)
        )
        return set(result.scalars().all())

"""
Auction lifecycle resolution.

Temporal status is derived on every read from the auction's start and end
times. The persisted Auction.status column is advisory and never consulted
here. Deactivation (Auction.is_active) is orthogonal: it suppresses bidding
but does not change the temporal status.
"""
import enum
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import and_


class AuctionStatus(str, enum.Enum):
    UPCOMING = "Upcoming"
    ACTIVE = "Active"
    ENDED = "Ended"


def resolve_status(start_time: datetime, end_time: datetime, now: datetime) -> AuctionStatus:
    """Upcoming before start, Ended after end, Active in between (both edges inclusive)"""
    if now < start_time:
        return AuctionStatus.UPCOMING
    if now > end_time:
        return AuctionStatus.ENDED
    return AuctionStatus.ACTIVE


def auction_status(auction, now: datetime) -> AuctionStatus:
    return resolve_status(auction.start_time, auction.end_time, now)


def time_remaining(auction, now: datetime) -> timedelta:
    remaining = auction.end_time - now
    return remaining if remaining > timedelta(0) else timedelta(0)


def parse_status(value: Optional[str]) -> Optional[AuctionStatus]:
    """Case-insensitive status parsing for query parameters"""
    if not value:
        return None
    for candidate in AuctionStatus:
        if candidate.value.lower() == value.strip().lower():
            return candidate
    raise ValueError(f"Unknown auction status '{value}'")


def status_filter(model, status: AuctionStatus, now: datetime):
    """SQL predicate matching resolve_status for the given model's time columns"""
    if status == AuctionStatus.UPCOMING:
        return model.start_time > now
    if status == AuctionStatus.ENDED:
        return model.end_time < now
    return and_(model.start_time <= now, model.end_time >= now)


def primary_image_url(images) -> Optional[str]:
    """Primary image if flagged, else the lowest display order"""
    if not images:
        return None
    for image in images:
        if image.is_primary:
            return image.image_url
    return min(images, key=lambda i: (i.display_order, i.id or 0)).image_url


def image_urls(images) -> List[str]:
    return [i.image_url for i in sorted(images or [], key=lambda i: (i.display_order, i.id or 0))]

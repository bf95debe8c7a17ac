from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from auction_house.services.lifecycle import (
    AuctionStatus,
    auction_status,
    image_urls,
    parse_status,
    primary_image_url,
    resolve_status,
    time_remaining,
)

START = datetime(2025, 3, 1, 9, 0, 0)
END = datetime(2025, 3, 8, 9, 0, 0)


@pytest.mark.parametrize("now, expected", [
    (START - timedelta(microseconds=1), AuctionStatus.UPCOMING),
    (START, AuctionStatus.ACTIVE),
    (START + timedelta(days=3), AuctionStatus.ACTIVE),
    (END, AuctionStatus.ACTIVE),
    (END + timedelta(microseconds=1), AuctionStatus.ENDED),
])
def test_resolve_status(now, expected):
    assert resolve_status(START, END, now) == expected


def test_status_ignores_persisted_status_and_active_flag():
    auction = SimpleNamespace(start_time=START, end_time=END, status="Ended", is_active=False)
    assert auction_status(auction, START + timedelta(hours=1)) == AuctionStatus.ACTIVE


def test_time_remaining_clamps_at_zero():
    auction = SimpleNamespace(start_time=START, end_time=END)
    assert time_remaining(auction, END - timedelta(hours=2)) == timedelta(hours=2)
    assert time_remaining(auction, END + timedelta(days=1)) == timedelta(0)


def test_parse_status():
    assert parse_status("active") == AuctionStatus.ACTIVE
    assert parse_status(" ENDED ") == AuctionStatus.ENDED
    assert parse_status("") is None
    assert parse_status(None) is None
    with pytest.raises(ValueError):
        parse_status("closed")


def image(id, display_order, is_primary=False):
    return SimpleNamespace(id=id, display_order=display_order, is_primary=is_primary, image_url=f"/img/{id}.jpg")


def test_primary_image_prefers_flag_then_lowest_order():
    assert primary_image_url([]) is None
    assert primary_image_url([image(1, 2), image(2, 1)]) == "/img/2.jpg"
    assert primary_image_url([image(1, 0), image(2, 5, is_primary=True)]) == "/img/2.jpg"


def test_image_urls_ordered_by_display_order():
    assert image_urls([image(3, 2), image(1, 0), image(2, 1)]) == ["/img/1.jpg", "/img/2.jpg", "/img/3.jpg"]

"""
Tests for auction creation, seller edits, removal and listings
"""
from datetime import timedelta, timezone
from decimal import Decimal

import pytest

from auction_house.models import Auction
from auction_house.services.auctions import AuctionService
from auction_house.services.bidding import BiddingEngine
from auction_house.services.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from auction_house.services.images import ImageService
from auction_house.utils.timeutils import utcnow


def create_kwargs(**overrides):
    values = dict(
        title="Mechanical keyboard",
        description="Hot-swappable board with brown switches",
        category="Electronics",
        starting_price="25.00",
        duration_days=7,
    )
    values.update(overrides)
    return values


@pytest.mark.asyncio
async def test_create_auction_defaults(db, seller):
    auction = await AuctionService(db).create_auction(seller.id, **create_kwargs())

    assert auction.id is not None
    assert auction.current_price == Decimal("25.00")
    assert auction.is_active
    assert auction.seller.id == seller.id
    assert auction.images == []
    assert auction.end_time - auction.start_time == timedelta(days=7)
    assert auction.status == "Active"
    assert auction.version == 1


@pytest.mark.asyncio
async def test_create_converts_aware_times_to_utc(db, seller):
    start = (utcnow() + timedelta(hours=2)).replace(tzinfo=timezone.utc).astimezone(timezone(timedelta(hours=2)))
    end = start + timedelta(days=1)

    auction = await AuctionService(db).create_auction(
        seller.id, **create_kwargs(duration_days=0, start_time=start, end_time=end)
    )

    assert auction.start_time.tzinfo is None
    assert auction.start_time == start.astimezone(timezone.utc).replace(tzinfo=None)
    assert auction.status == "Upcoming"


@pytest.mark.asyncio
async def test_create_requires_seller(db, buyer):
    with pytest.raises(PermissionDeniedError):
        await AuctionService(db).create_auction(buyer.id, **create_kwargs())


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides, message", [
    ({"start_time": utcnow() - timedelta(hours=1)}, "past"),
    ({"duration_days": 0}, "required"),
    ({"duration_days": 0, "end_time": utcnow() - timedelta(days=1)}, "after start"),
    ({"reserve_price": "10.00"}, "Reserve"),
])
async def test_create_validation(db, seller, overrides, message):
    with pytest.raises(ValidationError) as exc:
        await AuctionService(db).create_auction(seller.id, **create_kwargs(**overrides))
    assert message in exc.value.message


@pytest.mark.asyncio
async def test_create_accepts_start_within_tolerance(db, seller):
    start = utcnow() - timedelta(minutes=2)
    auction = await AuctionService(db).create_auction(seller.id, **create_kwargs(start_time=start))
    assert auction.start_time == start


@pytest.mark.asyncio
async def test_get_auction_counts_views_without_bumping_version(db, make_auction):
    auction = await make_auction()
    service = AuctionService(db)

    await service.get_auction(auction.id)
    fetched = await service.get_auction(auction.id)

    assert fetched.view_count == 2
    assert fetched.version == 1

    with pytest.raises(NotFoundError):
        await service.get_auction(424242)


@pytest.mark.asyncio
async def test_list_auctions_filters(db, make_auction, other_seller):
    await make_auction(title="Oil painting", category="Art")
    await make_auction(title="Canvas print", category="art", description="Large print of a famous PAINTING")
    await make_auction(title="Hidden painting", category="Art", is_active=False)
    await make_auction(title="Future sculpture", category="Art", starts_in=timedelta(days=1), ends_in=timedelta(days=5))
    await make_auction(title="Old painting", category="Art", starts_in=timedelta(days=-5), ends_in=timedelta(days=-1))
    await make_auction(title="Guitar", category="Music", seller_id=other_seller.id)

    service = AuctionService(db)

    items, total = await service.list_auctions(category="ART")
    assert total == 4
    assert "Hidden painting" not in [a.title for a in items]

    items, total = await service.list_auctions(search="painting")
    assert {a.title for a in items} == {"Oil painting", "Canvas print", "Old painting"}

    items, _ = await service.list_auctions(status="upcoming")
    assert [a.title for a in items] == ["Future sculpture"]

    items, _ = await service.list_auctions(status="Ended")
    assert [a.title for a in items] == ["Old painting"]

    items, _ = await service.list_auctions(seller_id=other_seller.id)
    assert [a.title for a in items] == ["Guitar"]

    with pytest.raises(ValidationError):
        await service.list_auctions(status="closed")


@pytest.mark.asyncio
async def test_list_auctions_newest_first_and_paginated(db, make_auction):
    now = utcnow()
    for i in range(5):
        await make_auction(title=f"Lot {i}", created_at=now + timedelta(seconds=i))

    items, total = await AuctionService(db).list_auctions(page=2, page_size=2)

    assert total == 5
    assert [a.title for a in items] == ["Lot 2", "Lot 1"]


@pytest.mark.asyncio
async def test_seller_auctions_include_deactivated(db, make_auction, seller):
    await make_auction(title="Live")
    await make_auction(title="Pulled", is_active=False)

    service = AuctionService(db)
    items, total = await service.get_seller_auctions(seller.id)
    assert total == 2

    items, _ = await service.get_seller_auctions(seller.id, status="active")
    assert [a.title for a in items] == ["Live"]


@pytest.mark.asyncio
async def test_update_descriptive_fields_always_allowed(db, session_maker, make_auction, seller, buyer):
    auction = await make_auction()
    await BiddingEngine(session_maker).place_bid(auction.id, buyer.id, Decimal("60"))

    updated = await AuctionService(db).update_auction(
        auction.id, seller.id, {"title": "  Renamed camera ", "is_featured": True}
    )

    assert updated.title == "Renamed camera"
    assert updated.is_featured


@pytest.mark.asyncio
async def test_update_commercial_terms_blocked_after_bidding(db, session_maker, make_auction, seller, buyer):
    auction = await make_auction()
    await BiddingEngine(session_maker).place_bid(auction.id, buyer.id, Decimal("60"))

    with pytest.raises(ValidationError):
        await AuctionService(db).update_auction(
            auction.id, seller.id, {"end_time": auction.end_time + timedelta(days=1)}
        )


@pytest.mark.asyncio
async def test_update_commercial_terms_before_bids(db, make_auction, seller):
    auction = await make_auction()
    service = AuctionService(db)

    updated = await service.update_auction(
        auction.id, seller.id, {"starting_price": Decimal("80"), "reserve_price": Decimal("120")}
    )
    assert updated.starting_price == Decimal("80.00")
    assert updated.current_price == Decimal("80.00")
    assert updated.reserve_price == Decimal("120.00")

    with pytest.raises(ValidationError):
        await service.update_auction(auction.id, seller.id, {"reserve_price": Decimal("10")})
    with pytest.raises(ValidationError):
        await service.update_auction(auction.id, seller.id, {"end_time": auction.start_time})
    with pytest.raises(ValidationError):
        await service.update_auction(auction.id, seller.id, {"seller_id": 99})


@pytest.mark.asyncio
async def test_update_requires_owner(db, make_auction, other_seller):
    auction = await make_auction()
    with pytest.raises(PermissionDeniedError):
        await AuctionService(db).update_auction(auction.id, other_seller.id, {"title": "Mine now"})


@pytest.mark.asyncio
async def test_delete_only_without_bids(db, session_maker, make_auction, seller, buyer):
    service = AuctionService(db)
    empty = await make_auction()
    await service.delete_auction(empty.id, seller.id)
    assert await db.get(Auction, empty.id) is None

    with_bids = await make_auction()
    await BiddingEngine(session_maker).place_bid(with_bids.id, buyer.id, Decimal("60"))
    with pytest.raises(ValidationError):
        await service.delete_auction(with_bids.id, seller.id)


@pytest.mark.asyncio
async def test_deactivate_stops_bidding(db, session_maker, make_auction, seller, buyer):
    auction = await make_auction(is_featured=True)

    deactivated = await AuctionService(db).deactivate_auction(auction.id, seller.id)
    assert not deactivated.is_active
    assert not deactivated.is_featured

    result = await BiddingEngine(session_maker).place_bid(auction.id, buyer.id, Decimal("60"))
    assert result.reason.value == "AuctionInactive"


@pytest.mark.asyncio
async def test_cannot_deactivate_ended_auction(db, make_auction, seller):
    auction = await make_auction(starts_in=timedelta(days=-3), ends_in=timedelta(days=-1))
    with pytest.raises(ValidationError):
        await AuctionService(db).deactivate_auction(auction.id, seller.id)


@pytest.mark.asyncio
async def test_seller_statistics(db, session_maker, make_auction, seller, buyer):
    seller_id = seller.id
    ended = await make_auction(category="Art", starts_in=timedelta(days=-3), ends_in=timedelta(days=-1))
    await make_auction(category="Art", is_featured=True, view_count=7)
    await make_auction(category="Books", starts_in=timedelta(days=1), ends_in=timedelta(days=3))

    # Bid while the ended auction was still open
    at = ended.start_time + timedelta(hours=1)
    await BiddingEngine(session_maker, clock=lambda: at).place_bid(ended.id, buyer.id, Decimal("150"))
    db.expire_all()

    stats = await AuctionService(db).get_seller_statistics(seller_id)

    assert stats.total_auctions == 3
    assert stats.active_auctions == 1
    assert stats.ended_auctions == 1
    assert stats.upcoming_auctions == 1
    assert stats.total_revenue == Decimal("150.00")
    assert stats.average_selling_price == Decimal("150.00")
    assert stats.total_views == 7
    assert stats.featured_auctions == 1
    assert stats.most_popular_category == "Art"


@pytest.mark.asyncio
async def test_update_rejects_negative_or_missing_prices(db, make_auction, seller):
    auction = await make_auction()
    service = AuctionService(db)

    with pytest.raises(ValidationError):
        await service.update_auction(auction.id, seller.id, {"starting_price": Decimal("-5")})
    with pytest.raises(ValidationError) as exc:
        await service.update_auction(auction.id, seller.id, {"starting_price": None, "title": None})
    assert exc.value.message == "Fields cannot be empty: starting_price, title"


@pytest.mark.asyncio
async def test_delete_removes_image_files(db, make_auction, seller, upload_dir):
    auction = await make_auction()
    image = await ImageService(db).upload_image(auction.id, seller.id, "front.jpg", b"\xff\xd8\xff" + b"\x00" * 16)
    path = upload_dir / "auctions" / image.image_url.rsplit("/", 1)[-1]
    assert path.exists()

    await AuctionService(db).delete_auction(auction.id, seller.id)

    assert not path.exists()

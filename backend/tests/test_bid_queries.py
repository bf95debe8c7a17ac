"""
Tests for bid history, statistics and per-user bid views
"""
from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio

from auction_house.services.bid_queries import BidQueryService
from auction_house.services.bidding import BiddingEngine
from auction_house.services.exceptions import NotFoundError, ValidationError
from auction_house.services.lifecycle import AuctionStatus
from auction_house.utils.timeutils import utcnow


@pytest.fixture
def place(session_maker):
    """Place bids inside the auction's window, one second apart"""
    placed = []

    async def _place(auction, bidder, amount):
        placed.append(amount)
        at = auction.start_time + timedelta(minutes=1, seconds=len(placed))
        engine = BiddingEngine(session_maker, clock=lambda: at)
        result = await engine.place_bid(auction.id, bidder.id, Decimal(amount))
        assert result.accepted, result.message
        return result
    return _place


@pytest_asyncio.fixture
async def ended_auction(make_auction):
    return await make_auction(
        title="Signed football",
        starts_in=timedelta(days=-3),
        ends_in=timedelta(days=-1),
    )


@pytest.mark.asyncio
async def test_statistics_without_bids(db, make_auction):
    auction = await make_auction(starting_price="40.00")
    stats = await BidQueryService(db).get_bid_statistics(auction.id)

    assert stats.total_bids == 0
    assert stats.unique_bidders == 0
    assert stats.average_increase == Decimal("0.00")
    assert stats.highest_bid == Decimal("40.00")
    assert stats.last_bid_time is None


@pytest.mark.asyncio
async def test_statistics_after_bids(db, make_auction, buyer, second_buyer, place):
    auction = await make_auction(starting_price="40.00")
    await place(auction, buyer, "50")
    await place(auction, second_buyer, "60")
    last = await place(auction, buyer, "70")

    stats = await BidQueryService(db).get_bid_statistics(auction.id)

    assert stats.total_bids == 3
    assert stats.unique_bidders == 2
    assert stats.current_price == Decimal("70.00")
    assert stats.highest_bid == stats.current_price
    assert stats.average_increase == Decimal("10.00")
    assert stats.last_bid_time == last.bid.bid_time


@pytest.mark.asyncio
async def test_statistics_missing_auction(db):
    with pytest.raises(NotFoundError):
        await BidQueryService(db).get_bid_statistics(12345)


@pytest.mark.asyncio
async def test_highest_bid_and_history(db, make_auction, buyer, second_buyer, place):
    auction = await make_auction()
    service = BidQueryService(db)
    assert await service.get_highest_bid(auction.id) is None

    await place(auction, buyer, "55")
    await place(auction, second_buyer, "65")

    highest = await service.get_highest_bid(auction.id)
    assert highest.amount == Decimal("65.00")
    assert highest.bidder.display_name == "Carl C."

    history = await service.get_auction_bids(auction.id)
    assert [b.amount for b in history] == [Decimal("65.00"), Decimal("55.00")]
    assert await service.count_auction_bids(auction.id) == 2

    second_page = await service.get_auction_bids(auction.id, page=2, page_size=1)
    assert [b.amount for b in second_page] == [Decimal("55.00")]


@pytest.mark.asyncio
async def test_user_bids_filters(db, make_auction, ended_auction, buyer, second_buyer, place):
    open_auction = await make_auction(title="Open listing")
    other_ended = await make_auction(title="Lost listing", starts_in=timedelta(days=-3), ends_in=timedelta(days=-1))

    await place(open_auction, buyer, "60")
    await place(ended_auction, buyer, "60")
    await place(other_ended, buyer, "60")
    await place(other_ended, second_buyer, "70")

    service = BidQueryService(db)

    everything = await service.get_user_bids(buyer.id)
    assert len(everything) == 3
    assert {b.auction_status for b in everything} == {AuctionStatus.ACTIVE, AuctionStatus.ENDED}

    active = await service.get_user_bids(buyer.id, status="active")
    assert [b.auction_title for b in active] == ["Open listing"]

    won = await service.get_user_bids(buyer.id, status="WON")
    assert [b.auction_title for b in won] == ["Signed football"]

    lost = await service.get_user_bids(buyer.id, status="lost")
    assert [b.auction_title for b in lost] == ["Lost listing"]

    with pytest.raises(ValidationError):
        await service.get_user_bids(buyer.id, status="pending")


@pytest.mark.asyncio
async def test_winning_bids_and_winner_check(db, ended_auction, seller, buyer, second_buyer, place):
    await place(ended_auction, second_buyer, "55")
    await place(ended_auction, buyer, "80")

    service = BidQueryService(db)
    wins = await service.get_user_winning_bids(buyer.id)

    assert len(wins) == 1
    assert wins[0].winning_amount == Decimal("80.00")
    assert wins[0].seller_email == seller.email
    assert wins[0].seller_name == "Sam Seller"
    assert wins[0].shipping_info == "Ships worldwide"

    assert await service.is_user_winning_bidder(ended_auction.id, buyer.id)
    assert not await service.is_user_winning_bidder(ended_auction.id, second_buyer.id)
    assert await service.get_user_winning_bids(second_buyer.id) == []


@pytest.mark.asyncio
async def test_bidding_summary(db, make_auction, ended_auction, buyer, second_buyer, place):
    open_auction = await make_auction()
    lost_auction = await make_auction(starts_in=timedelta(days=-3), ends_in=timedelta(days=-1))

    await place(open_auction, buyer, "60")
    await place(ended_auction, buyer, "90")
    await place(lost_auction, buyer, "60")
    await place(lost_auction, second_buyer, "75")

    summary = await BidQueryService(db, clock=utcnow).get_bidding_summary(buyer.id)

    assert summary.total_bids == 3
    assert summary.active_bids == 1
    assert summary.won_auctions == 1
    assert summary.lost_auctions == 1
    assert summary.total_amount_bid == Decimal("210.00")
    assert summary.total_amount_won == Decimal("90.00")
    assert len(summary.recent_bids) == 3
    assert [w.auction_id for w in summary.recent_wins] == [ended_auction.id]

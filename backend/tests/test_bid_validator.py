"""
Tests for the bid acceptance rules
"""
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from auction_house.models import AccountType
from auction_house.services.bid_validator import (
    BidRejectionReason,
    minimum_bid_amount,
    validate_bid,
)

NOW = datetime(2025, 6, 1, 12, 0, 0)
SELLER_ID = 1
BUYER_ID = 2
OTHER_BUYER_ID = 3
BUYER = AccountType.BUYER.value
SELLER = AccountType.SELLER.value


def make_auction(**overrides):
    values = dict(
        id=10,
        seller_id=SELLER_ID,
        is_active=True,
        start_time=NOW - timedelta(hours=1),
        end_time=NOW + timedelta(hours=1),
        starting_price=Decimal("50.00"),
        current_price=Decimal("50.00"),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def make_bid(amount, bidder_id=OTHER_BUYER_ID):
    return SimpleNamespace(amount=Decimal(amount), bidder_id=bidder_id)


def test_accepts_valid_first_bid():
    decision = validate_bid(make_auction(), None, BUYER_ID, BUYER, Decimal("51.00"), NOW)
    assert decision.accepted
    assert decision.reason is None


def test_accepts_bid_above_highest():
    decision = validate_bid(make_auction(), make_bid("75.00"), BUYER_ID, BUYER, Decimal("75.01"), NOW)
    assert decision.accepted


def test_missing_auction_is_inactive():
    decision = validate_bid(None, None, BUYER_ID, BUYER, Decimal("100"), NOW)
    assert decision.reason == BidRejectionReason.AUCTION_INACTIVE


def test_deactivated_auction_rejected():
    decision = validate_bid(make_auction(is_active=False), None, BUYER_ID, BUYER, Decimal("100"), NOW)
    assert not decision.accepted
    assert decision.reason == BidRejectionReason.AUCTION_INACTIVE


def test_not_started():
    auction = make_auction(start_time=NOW + timedelta(seconds=1))
    decision = validate_bid(auction, None, BUYER_ID, BUYER, Decimal("100"), NOW)
    assert decision.reason == BidRejectionReason.NOT_STARTED


def test_ended_even_without_prior_bids():
    auction = make_auction(end_time=NOW - timedelta(seconds=1))
    decision = validate_bid(auction, None, BUYER_ID, BUYER, Decimal("1000"), NOW)
    assert decision.reason == BidRejectionReason.ENDED


def test_boundaries_are_inclusive():
    at_start = make_auction(start_time=NOW)
    at_end = make_auction(end_time=NOW)
    assert validate_bid(at_start, None, BUYER_ID, BUYER, Decimal("60"), NOW).accepted
    assert validate_bid(at_end, None, BUYER_ID, BUYER, Decimal("60"), NOW).accepted


@pytest.mark.parametrize("amount", ["0.01", "50.00", "1000000.00"])
def test_self_bid_rejected_regardless_of_amount(amount):
    decision = validate_bid(make_auction(), None, SELLER_ID, SELLER, Decimal(amount), NOW)
    assert decision.reason == BidRejectionReason.SELF_BID


def test_seller_cannot_bid_on_other_sellers_auction():
    decision = validate_bid(make_auction(), None, 99, SELLER, Decimal("100"), NOW)
    assert decision.reason == BidRejectionReason.ROLE_FORBIDDEN


@pytest.mark.parametrize("amount", ["49.99", "50.00"])
def test_amount_must_exceed_starting_price(amount):
    decision = validate_bid(make_auction(), None, BUYER_ID, BUYER, Decimal(amount), NOW)
    assert decision.reason == BidRejectionReason.AMOUNT_TOO_LOW
    assert decision.minimum_amount == Decimal("50.00")
    assert "$50.00" in decision.message


def test_amount_equal_to_highest_bid_rejected():
    decision = validate_bid(make_auction(), make_bid("80"), BUYER_ID, BUYER, Decimal("80.00"), NOW)
    assert decision.reason == BidRejectionReason.AMOUNT_TOO_LOW
    assert decision.message == "Bid must be higher than current highest bid of $80.00"


def test_already_highest_bidder():
    highest = make_bid("80", bidder_id=BUYER_ID)
    decision = validate_bid(make_auction(), highest, BUYER_ID, BUYER, Decimal("90"), NOW)
    assert decision.reason == BidRejectionReason.ALREADY_HIGHEST_BIDDER


def test_check_order_first_failure_wins():
    # Inactive and ended and self bid at once: inactive is reported
    auction = make_auction(is_active=False, end_time=NOW - timedelta(days=1))
    decision = validate_bid(auction, None, SELLER_ID, SELLER, Decimal("1"), NOW)
    assert decision.reason == BidRejectionReason.AUCTION_INACTIVE

    # Low amount from the current highest bidder: amount is checked first
    decision = validate_bid(make_auction(), make_bid("80", BUYER_ID), BUYER_ID, BUYER, Decimal("70"), NOW)
    assert decision.reason == BidRejectionReason.AMOUNT_TOO_LOW


def test_minimum_bid_amount():
    auction = make_auction()
    assert minimum_bid_amount(auction, None) == Decimal("50.00")
    assert minimum_bid_amount(auction, make_bid("72.50")) == Decimal("72.50")

from auction_house.models.user import User, AccountType
from auction_house.models.auction import Auction, AuctionImage
from auction_house.models.bid import Bid
from auction_house.models.watchlist import WatchlistItem

__all__ = [
    "User",
    "AccountType",
    "Auction",
    "AuctionImage",
    "Bid",
    "WatchlistItem",
]

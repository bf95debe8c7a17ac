"""
GraphQL Mutations
Define all write operations for the API
"""
import strawberry
from strawberry.types import Info

from auction_house.graphql.types import GenericResponse
from auction_house.services.exceptions import NotFoundError
from auction_house.services.watchlist import WatchlistService


@strawberry.type
class Mutation:
    @strawberry.mutation
    async def toggle_watch(
        self,
        info: Info,
        auction_id: int,
    ) -> GenericResponse:
        """
        Toggle watch status on an auction for the current user.
        Requires authentication.

        Args:
            auction_id: ID of the auction
        """
        user = info.context.get("user") if info.context else None
        if not user:
            return GenericResponse(
                success=False,
                message="Authentication required to watch auctions",
            )

        try:
            watched = await WatchlistService(info.context["db"]).toggle(user.id, auction_id)
        except NotFoundError as e:
            return GenericResponse(success=False, message=e.message)

        return GenericResponse(
            success=True,
            message="Added to watchlist" if watched else "Removed from watchlist",
        )

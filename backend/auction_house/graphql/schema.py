"""
GraphQL Schema
Combines queries and mutations into the main schema
"""
import strawberry
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from auction_house.database import get_db
from auction_house.graphql.queries import Query
from auction_house.graphql.mutations import Mutation
from auction_house.services.auth import AuthService


schema = strawberry.Schema(
    query=Query,
    mutation=Mutation,
)


async def get_context(request: Request, db: AsyncSession = Depends(get_db)):
    """Build GraphQL context with the request session and optional authenticated user"""
    user = None
    auth_header = request.headers.get("Authorization")

    if auth_header and auth_header.startswith("Bearer "):
        user = await AuthService(db).get_current_user(auth_header[7:])

    return {"request": request, "db": db, "user": user}

"""
Auction image REST API endpoints
"""
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession
from auction_house.database import get_db
from auction_house.api.deps import require_seller
from auction_house.models import User
from auction_house.services.images import ImageService

router = APIRouter(prefix="/api/images", tags=["images"])


class ImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    auction_id: int
    image_url: str
    alt_text: Optional[str] = None
    is_primary: bool
    display_order: int
    created_at: datetime


class ImageUpdateRequest(BaseModel):
    alt_text: Optional[str] = Field(None, max_length=255)
    display_order: Optional[int] = Field(None, ge=0)


@router.post("/auctions/{auction_id}", response_model=ImageResponse, status_code=201)
async def upload_image(
    auction_id: int,
    file: UploadFile = File(...),
    alt_text: Optional[str] = Form(None),
    is_primary: bool = Form(False),
    display_order: int = Form(0),
    user: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db)
):
    """Upload an image for one of the seller's auctions"""
    content = await file.read()
    return await ImageService(db).upload_image(
        auction_id=auction_id,
        seller_id=user.id,
        filename=file.filename,
        content=content,
        alt_text=alt_text,
        is_primary=is_primary,
        display_order=display_order,
    )


@router.get("/auctions/{auction_id}", response_model=List[ImageResponse])
async def get_auction_images(
    auction_id: int,
    db: AsyncSession = Depends(get_db)
):
    return await ImageService(db).get_auction_images(auction_id)


@router.put("/{image_id}", response_model=ImageResponse)
async def update_image(
    image_id: int,
    request: ImageUpdateRequest,
    user: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db)
):
    return await ImageService(db).update_image(
        image_id,
        user.id,
        alt_text=request.alt_text,
        display_order=request.display_order,
    )


@router.put("/{image_id}/primary", response_model=ImageResponse)
async def set_primary_image(
    image_id: int,
    user: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db)
):
    return await ImageService(db).set_primary_image(image_id, user.id)


@router.delete("/{image_id}")
async def delete_image(
    image_id: int,
    user: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db)
):
    await ImageService(db).delete_image(image_id, user.id)
    return {"message": "Image deleted successfully"}


@router.delete("/auctions/{auction_id}")
async def delete_auction_images(
    auction_id: int,
    user: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db)
):
    deleted = await ImageService(db).delete_auction_images(auction_id, user.id)
    return {"message": f"Deleted {deleted} images", "deleted": deleted}

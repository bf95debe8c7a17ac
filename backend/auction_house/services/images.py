"""
Auction image storage.

Files are written to the upload directory and referenced by URL. Only the
auction's seller can change its images. At most one image per auction is
primary; marking an image primary demotes the others first.
"""
import logging
from pathlib import Path
from typing import List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auction_house.config import get_settings
from auction_house.models import Auction, AuctionImage
from auction_house.services.exceptions import NotFoundError, PermissionDeniedError, PersistenceError, ValidationError
from auction_house.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads/auctions"


class ImageService:

    def __init__(self, db: AsyncSession, upload_dir: Optional[str] = None):
        self.db = db
        self.settings = get_settings()
        self.upload_dir = Path(upload_dir or self.settings.upload_dir) / "auctions"

    async def _get_owned_auction(self, auction_id: int, seller_id: int) -> Auction:
        auction = await self.db.get(Auction, auction_id)
        if auction is None:
            raise NotFoundError("Auction", auction_id)
        if auction.seller_id != seller_id:
            raise PermissionDeniedError("You can only manage images of your own auctions")
        return auction

    async def _get_owned_image(self, image_id: int, seller_id: int) -> AuctionImage:
        image = await self.db.get(AuctionImage, image_id)
        if image is None:
            raise NotFoundError("Image", image_id)
        await self._get_owned_auction(image.auction_id, seller_id)
        return image

    def validate_file(self, filename: str, content: bytes) -> str:
        """Check size and extension, returning the normalized extension"""
        if not content:
            raise ValidationError("File is empty")

        max_size = self.settings.max_image_size
        if len(content) > max_size:
            raise ValidationError(
                f"File size exceeds the maximum allowed size of {max_size // 1024 // 1024}MB"
            )

        extension = Path(filename or "").suffix.lower()
        allowed = self.settings.allowed_image_extensions_list
        if extension not in allowed:
            raise ValidationError(
                f"File type '{extension}' is not allowed. Allowed types: {', '.join(allowed)}"
            )
        return extension

    async def _unset_primary(self, auction_id: int) -> None:
        await self.db.execute(
            update(AuctionImage)
            .where(AuctionImage.auction_id == auction_id, AuctionImage.is_primary.is_(True))
            .values(is_primary=False)
            .execution_options(synchronize_session="fetch")
        )

    async def upload_image(
        self,
        auction_id: int,
        seller_id: int,
        filename: str,
        content: bytes,
        alt_text: Optional[str] = None,
        is_primary: bool = False,
        display_order: int = 0,
    ) -> AuctionImage:
        auction = await self._get_owned_auction(auction_id, seller_id)
        extension = self.validate_file(filename, content)

        count_result = await self.db.execute(
            select(func.count(AuctionImage.id)).where(AuctionImage.auction_id == auction_id)
        )
        index = (count_result.scalar() or 0) + 1
        timestamp = utcnow().strftime("%Y%m%d%H%M%S")
        stored_name = f"Seller{auction.seller_id}_Item{auction_id}_{timestamp}_{index}{extension}"

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        path = self.upload_dir / stored_name
        path.write_bytes(content)

        if is_primary:
            await self._unset_primary(auction_id)

        image = AuctionImage(
            auction_id=auction_id,
            image_url=f"{URL_PREFIX}/{stored_name}",
            alt_text=alt_text,
            is_primary=is_primary,
            display_order=display_order,
        )
        self.db.add(image)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            path.unlink(missing_ok=True)
            logger.error(f"Failed to save image record for auction {auction_id}", exc_info=True)
            raise PersistenceError() from e
        await self.db.refresh(image)

        logger.info(f"Image {image.id} uploaded for auction {auction_id}: {image.image_url}")
        return image

    async def get_auction_images(self, auction_id: int) -> List[AuctionImage]:
        """Primary first, then display order, then upload time"""
        result = await self.db.execute(
            select(AuctionImage)
            .where(AuctionImage.auction_id == auction_id)
            .order_by(
                AuctionImage.is_primary.desc(),
                AuctionImage.display_order.asc(),
                AuctionImage.created_at.asc(),
                AuctionImage.id.asc(),
            )
        )
        return list(result.scalars().all())

    async def set_primary_image(self, image_id: int, seller_id: int) -> AuctionImage:
        image = await self._get_owned_image(image_id, seller_id)
        await self._unset_primary(image.auction_id)
        image.is_primary = True
        await self.db.commit()
        logger.info(f"Image {image_id} set as primary for auction {image.auction_id}")
        return image

    async def update_image(
        self,
        image_id: int,
        seller_id: int,
        alt_text: Optional[str] = None,
        display_order: Optional[int] = None,
    ) -> AuctionImage:
        image = await self._get_owned_image(image_id, seller_id)
        if alt_text is not None:
            image.alt_text = alt_text
        if display_order is not None:
            image.display_order = display_order
        await self.db.commit()
        return image

    async def delete_image(self, image_id: int, seller_id: int) -> None:
        image = await self._get_owned_image(image_id, seller_id)
        auction_id, image_url = image.auction_id, image.image_url
        await self.db.delete(image)
        await self.db.commit()
        self.delete_file(image_url)
        logger.info(f"Image {image_id} deleted for auction {auction_id}")

    async def delete_auction_images(self, auction_id: int, seller_id: int) -> int:
        """Remove every image of an auction, returning how many were removed"""
        await self._get_owned_auction(auction_id, seller_id)
        images = await self.get_auction_images(auction_id)
        image_urls = [image.image_url for image in images]
        for image in images:
            await self.db.delete(image)
        await self.db.commit()
        for image_url in image_urls:
            self.delete_file(image_url)
        logger.info(f"All images deleted for auction {auction_id}")
        return len(images)

    def delete_file(self, image_url: str) -> None:
        if not image_url:
            return
        path = self.upload_dir / Path(image_url).name
        try:
            path.unlink(missing_ok=True)
        except OSError:
            # The record goes away even if the file cannot be removed
            logger.warning(f"Failed to delete image file {path}", exc_info=True)

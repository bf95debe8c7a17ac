from typing import Tuple
from auction_house.config import get_settings


def page_window(page: int, page_size: int) -> Tuple[int, int, int]:
    """Clamp 1-based pagination input and return (page, page_size, offset)"""
    max_page_size = get_settings().max_page_size
    page = max(page, 1)
    # Cap page_size to prevent abuse
    page_size = min(max(page_size, 1), max_page_size)
    return page, page_size, (page - 1) * page_size

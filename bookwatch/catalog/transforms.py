"""Volume to catalog input conversion."""

from __future__ import annotations

from urllib.parse import urlencode

from bookwatch.catalog.models import Volume
from bookwatch.shared.constants import AMAZON_SEARCH_URL, GOOGLE_BOOKS_SOURCE
from bookwatch.shared.identifiers import extract_isbn13
from bookwatch.store.models import BookInput, BookLink


def build_links(volume: Volume, isbn13: str) -> list[BookLink]:
    """
    Collect related links for a volume.

    Args:
        volume: Search hit.
        isbn13: Canonical identifier.

    Returns:
        Google Books info and preview links when present, then a store search link.
    """
    info = volume.volume_info
    links: list[BookLink] = []
    if info.info_link:
        links.append(BookLink(label="Google Books", url=info.info_link))
    if info.preview_link:
        links.append(BookLink(label="Preview", url=info.preview_link))
    links.append(
        BookLink(label="Amazon", url=f"{AMAZON_SEARCH_URL}?{urlencode({'k': isbn13})}")
    )
    return links


def volume_to_book(volume: Volume) -> BookInput | None:
    """
    Convert a search hit into a catalog input.

    Args:
        volume: Search hit.

    Returns:
        Catalog input, or None when the volume carries no usable ISBN.
    """
    info = volume.volume_info
    isbn13 = extract_isbn13(info.industry_identifiers)
    if isbn13 is None:
        return None
    cover_url = None
    if info.image_links is not None:
        cover_url = info.image_links.thumbnail or info.image_links.small_thumbnail
    return BookInput(
        isbn13=isbn13,
        title=info.title,
        source=GOOGLE_BOOKS_SOURCE,
        authors=list(info.authors),
        publisher=info.publisher,
        published_date=info.published_date,
        description=info.description,
        cover_url=cover_url,
        links=build_links(volume, isbn13),
    )

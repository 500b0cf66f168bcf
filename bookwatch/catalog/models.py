"""Google Books volumes payload models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class IndustryIdentifier(BaseModel):
    """
    Industry identifier attached to a volume.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str | None = None
    identifier: str | None = None


class ImageLinks(BaseModel):
    """
    Cover image references.
    """

    model_config = ConfigDict(populate_by_name=True)

    thumbnail: str | None = None
    small_thumbnail: str | None = Field(default=None, alias="smallThumbnail")


class VolumeInfo(BaseModel):
    """
    Bibliographic part of a volume.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    authors: list[str] = Field(default_factory=list)
    publisher: str | None = None
    published_date: str | None = Field(default=None, alias="publishedDate")
    description: str | None = None
    industry_identifiers: list[IndustryIdentifier] = Field(
        default_factory=list, alias="industryIdentifiers"
    )
    image_links: ImageLinks | None = Field(default=None, alias="imageLinks")
    info_link: str | None = Field(default=None, alias="infoLink")
    preview_link: str | None = Field(default=None, alias="previewLink")


class Volume(BaseModel):
    """
    One search hit.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    volume_info: VolumeInfo = Field(alias="volumeInfo")


class VolumesResponse(BaseModel):
    """
    Volumes search response body.

    Hits are kept raw and validated one by one, so a single malformed hit
    does not reject the whole page.
    """

    model_config = ConfigDict(populate_by_name=True)

    kind: str | None = None
    total_items: int = Field(default=0, alias="totalItems", ge=0)
    items: list[Any] = Field(default_factory=list)

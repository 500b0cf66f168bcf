"""Tests for volume conversion."""

from __future__ import annotations

from bookwatch.catalog.models import Volume
from bookwatch.catalog.transforms import volume_to_book
from bookwatch.store.models import BookLink


def test_volume_to_book_maps_fields() -> None:
    volume = Volume.model_validate(
        {
            "id": "abc",
            "volumeInfo": {
                "title": "Fluent Python",
                "authors": ["Luciano Ramalho"],
                "publisher": "O'Reilly",
                "publishedDate": "2015-08",
                "description": "Clear, concise, and effective programming.",
                "industryIdentifiers": [
                    {"type": "ISBN_10", "identifier": "0306406152"},
                    {"type": "ISBN_13", "identifier": "978-4-87311-908-3"},
                ],
                "imageLinks": {"smallThumbnail": "https://img/small"},
                "infoLink": "https://books.google.com/info",
                "previewLink": "https://books.google.com/preview",
            },
        }
    )

    book = volume_to_book(volume)

    assert book is not None
    assert book.isbn13 == "9784873119083"
    assert book.title == "Fluent Python"
    assert book.published_date == "2015-08"
    assert book.cover_url == "https://img/small"
    assert book.source == "google_books"
    assert book.links == [
        BookLink(label="Google Books", url="https://books.google.com/info"),
        BookLink(label="Preview", url="https://books.google.com/preview"),
        BookLink(label="Amazon", url="https://www.amazon.co.jp/s?k=9784873119083"),
    ]


def test_volume_without_isbn_is_dropped() -> None:
    volume = Volume.model_validate({"id": "x", "volumeInfo": {"title": "No ISBN"}})
    assert volume_to_book(volume) is None

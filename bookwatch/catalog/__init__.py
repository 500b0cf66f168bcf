"""Google Books catalog integration."""

from bookwatch.catalog.client import GoogleBooksClient, SearchOptions, SearchPage
from bookwatch.catalog.transforms import volume_to_book

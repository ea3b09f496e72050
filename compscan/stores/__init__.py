"""Persistent stores for the symbol catalog and resolved component metadata."""

from .catalog import CatalogStore, append_entries
from .metadata import MetadataStore, locate, metadata_key

__all__ = ["CatalogStore", "MetadataStore", "append_entries", "locate", "metadata_key"]

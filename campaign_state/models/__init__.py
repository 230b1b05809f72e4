"""Record and view models."""

from .campaign import Campaign, SourceRecords
from .records import (
    AggregateRecord,
    ChainRecord,
    FallbackRecord,
    MetadataRecord,
    parse_decimal,
)

__all__ = [
    "Campaign",
    "SourceRecords",
    "AggregateRecord",
    "ChainRecord",
    "FallbackRecord",
    "MetadataRecord",
    "parse_decimal",
]

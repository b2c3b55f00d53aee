"""Mirror ingestion: fetching and normalization of public profile posts."""

from ingestion.mirror import MirrorFetcher, bridge_name_for
from ingestion.normalizer import normalize_post
from ingestion.types import (
    BRIDGE_NAMES,
    SUPPORTED_PLATFORMS,
    FeedRecord,
    FetchFailureError,
    MirrorConfig,
    NormalizedPost,
    PlatformKey,
    RawPost,
    UnsupportedPlatformError,
)

__all__ = [
    "BRIDGE_NAMES",
    "SUPPORTED_PLATFORMS",
    "FeedRecord",
    "FetchFailureError",
    "MirrorConfig",
    "MirrorFetcher",
    "NormalizedPost",
    "PlatformKey",
    "RawPost",
    "UnsupportedPlatformError",
    "bridge_name_for",
    "normalize_post",
]

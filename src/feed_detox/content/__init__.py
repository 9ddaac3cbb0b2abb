"""Content discovery: topic to ordered video ids."""

from .resolver import ContentResolver, YouTubeResolver, create_resolver

__all__ = ["ContentResolver", "YouTubeResolver", "create_resolver"]

"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like domain names, cache keys and
chat messages, ensuring consistency and type safety.
"""

from typing import NewType, TypedDict

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
DomainName = NewType("DomainName", str)        # Normalized 'label.tld'
SearchQuery = NewType("SearchQuery", str)      # Free-text search term

# === Caching Context ===
CacheKey = NewType("CacheKey", str)            # Unique key for a cache entry

# === AI Interaction ===
MessageRole = NewType("MessageRole", str)      # 'user', 'system'


class ChatMessage(TypedDict):
    """Represents a message structure expected by chat completion APIs."""
    role: MessageRole
    content: str

"""
Data types for the reading list.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Optional

from .errors import InvalidEntry, InvalidIdentifier


MAX_IDENTIFIER_LENGTH = 64

# Identifiers travel through shells and file names unquoted
_IDENTIFIER_RE = re.compile(r'^[A-Za-z0-9_-]+$')


def validate_identifier(identifier: str) -> str:
    """Validate a user-supplied identifier; return it unchanged."""
    if not isinstance(identifier, str) or not identifier:
        raise InvalidIdentifier("Identifier must not be empty")
    if len(identifier) > MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifier(
            f"Identifier must be at most {MAX_IDENTIFIER_LENGTH} characters: {identifier!r}"
        )
    if not _IDENTIFIER_RE.match(identifier):
        raise InvalidIdentifier(
            f"Identifier contains invalid characters (allowed: a-z, A-Z, 0-9, _, -): {identifier!r}"
        )
    return identifier


def normalize_topics(topics: Optional[Iterable[str]]) -> frozenset[str]:
    """Strip topics and collapse duplicates. Blank topics are rejected."""
    if topics is None:
        return frozenset()
    if isinstance(topics, str):
        topics = [topics]
    result = set()
    for topic in topics:
        if not isinstance(topic, str):
            raise InvalidEntry(f"Topic must be a string: {topic!r}")
        stripped = topic.strip()
        if not stripped:
            raise InvalidEntry("Topics must not be empty")
        result.add(stripped)
    return frozenset(result)


def _require_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidEntry(f"Entry {name} must not be empty")
    return value.strip()


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidEntry(f"Expected text, got {value!r}")
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class Entry:
    """
    A single reading-list record.

    Instances are immutable; the store hands out copies, never live rows.
    """
    identifier: str
    url: str
    title: str
    author: Optional[str] = None
    topics: frozenset[str] = field(default_factory=frozenset)
    date_added: date = field(default_factory=date.today)

    def __post_init__(self):
        validate_identifier(self.identifier)
        object.__setattr__(self, "url", _require_text("url", self.url))
        object.__setattr__(self, "title", _require_text("title", self.title))
        object.__setattr__(self, "author", _optional_text(self.author))
        object.__setattr__(self, "topics", normalize_topics(self.topics))
        if isinstance(self.date_added, datetime):
            object.__setattr__(self, "date_added", self.date_added.date())
        elif not isinstance(self.date_added, date):
            raise InvalidEntry(f"date_added must be a date: {self.date_added!r}")

    def with_identifier(self, identifier: str) -> "Entry":
        return replace(self, identifier=identifier)

    def to_dict(self) -> dict:
        """Plain-data form used by JSON output and export."""
        return {
            "identifier": self.identifier,
            "url": self.url,
            "title": self.title,
            "author": self.author,
            "topics": sorted(self.topics),
            "date_added": self.date_added.isoformat(),
        }


# ---------------------------------------------------------------------------
# Partial updates
# ---------------------------------------------------------------------------

class PatchOp(Enum):
    UNCHANGED = "unchanged"
    SET = "set"
    CLEAR = "clear"


@dataclass(frozen=True)
class FieldPatch:
    """Change to one scalar field: leave it, set it, or clear it."""
    op: PatchOp = PatchOp.UNCHANGED
    value: Optional[str] = None

    @classmethod
    def unchanged(cls) -> "FieldPatch":
        return cls()

    @classmethod
    def set(cls, value: str) -> "FieldPatch":
        return cls(PatchOp.SET, value)

    @classmethod
    def clear(cls) -> "FieldPatch":
        return cls(PatchOp.CLEAR)

    def apply(self, current: Optional[str]) -> Optional[str]:
        if self.op is PatchOp.SET:
            return self.value
        if self.op is PatchOp.CLEAR:
            return None
        return current


@dataclass(frozen=True)
class TopicsPatch:
    """
    Change to the topic set.

    Applied in order: clear (if requested), remove, add. Replacing the
    whole set is ``TopicsPatch(add=new, clear=True)``.
    """
    add: frozenset[str] = frozenset()
    remove: frozenset[str] = frozenset()
    clear: bool = False

    def __post_init__(self):
        object.__setattr__(self, "add", normalize_topics(self.add))
        object.__setattr__(self, "remove", normalize_topics(self.remove))

    def is_empty(self) -> bool:
        return not (self.add or self.remove or self.clear)

    def apply(self, current: frozenset[str]) -> frozenset[str]:
        topics = set() if self.clear else set(current)
        topics -= self.remove
        topics |= self.add
        return frozenset(topics)


@dataclass(frozen=True)
class EntryPatch:
    url: FieldPatch = field(default_factory=FieldPatch)
    title: FieldPatch = field(default_factory=FieldPatch)
    author: FieldPatch = field(default_factory=FieldPatch)
    topics: TopicsPatch = field(default_factory=TopicsPatch)

    def apply(self, entry: Entry) -> Entry:
        """Return the patched entry. Identifier and date_added never change."""
        if self.url.op is PatchOp.CLEAR:
            raise InvalidEntry("The url of an entry cannot be cleared")
        if self.title.op is PatchOp.CLEAR:
            raise InvalidEntry("The title of an entry cannot be cleared")
        return Entry(
            identifier=entry.identifier,
            url=self.url.apply(entry.url),
            title=self.title.apply(entry.title),
            author=self.author.apply(entry.author),
            topics=self.topics.apply(entry.topics),
            date_added=entry.date_added,
        )

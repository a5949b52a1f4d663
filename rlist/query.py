"""
Query engine for the reading list.

A FilterSpec is a fully structured description of what to return. Raw
``key:value`` tokens are the CLI's business; nothing here looks at them.

Everything that can fail (date expressions, sort field, limit) is checked
when the Query is built, so a bad query never yields a partial result.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, Iterator, Optional, Union

from .entry_store import EntryStore
from .errors import InvalidDateExpression, InvalidQuery, InvalidSortField
from .types import Entry, normalize_topics

logger = logging.getLogger(__name__)

# Explicit dates on the command line: day-month-year, two-digit year
DATE_TOKEN_FORMAT = "%d-%m-%y"

DateLike = Union[date, str]
Clock = Callable[[], date]


class SortField(Enum):
    IDENTIFIER = "identifier"
    URL = "url"
    TITLE = "title"
    AUTHOR = "author"
    DATE = "date"

    @classmethod
    def parse(cls, value: Union["SortField", str, None]) -> "SortField":
        if value is None:
            return cls.DATE
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name in ("date_added", "added"):
            return cls.DATE
        if name in ("name", "id"):
            return cls.IDENTIFIER
        try:
            return cls(name)
        except ValueError:
            raise InvalidSortField(str(value), tuple(f.value for f in cls)) from None


def resolve_date_expression(expression: DateLike, today: date) -> date:
    """
    Turn a date expression into a concrete date.

    Accepts a ``date`` as-is, ``today``, ``yesterday``, or DD-MM-YY.
    """
    if isinstance(expression, datetime):
        return expression.date()
    if isinstance(expression, date):
        return expression
    if not isinstance(expression, str):
        raise InvalidDateExpression(repr(expression))
    token = expression.strip().lower()
    if token == "today":
        return today
    if token == "yesterday":
        return today - timedelta(days=1)
    try:
        return datetime.strptime(token, DATE_TOKEN_FORMAT).date()
    except ValueError:
        raise InvalidDateExpression(expression) from None


@dataclass
class FilterSpec:
    """
    What to return from the reading list.

    Every field is optional; a field left at its default imposes no
    constraint. Present predicates are combined with AND.
    """
    name_substring: Optional[str] = None
    url_substring: Optional[str] = None
    author: Optional[str] = None
    topics: frozenset[str] = field(default_factory=frozenset)
    date_from: Optional[DateLike] = None
    date_to: Optional[DateLike] = None
    date_token: Optional[DateLike] = None
    sort_by: Union[SortField, str, None] = None
    descending: bool = False
    limit: Optional[int] = None


@dataclass(frozen=True)
class _Resolved:
    name_substring: Optional[str]
    url_substring: Optional[str]
    author: Optional[str]
    topics: frozenset[str]
    date_from: Optional[date]
    date_to: Optional[date]
    date_equals: Optional[date]
    sort_by: SortField
    descending: bool
    limit: int

    def matches(self, entry: Entry) -> bool:
        if self.name_substring is not None:
            if (self.name_substring not in entry.identifier.casefold()
                    and self.name_substring not in entry.title.casefold()):
                return False
        if self.url_substring is not None and self.url_substring not in entry.url.casefold():
            return False
        if self.author is not None:
            if entry.author is None or entry.author.casefold() != self.author:
                return False
        if self.topics and not self.topics <= entry.topics:
            return False
        if self.date_equals is not None and entry.date_added != self.date_equals:
            return False
        if self.date_from is not None and entry.date_added < self.date_from:
            return False
        if self.date_to is not None and entry.date_added > self.date_to:
            return False
        return True


def _sort_key(sort_by: SortField) -> Callable[[Entry], tuple]:
    if sort_by is SortField.IDENTIFIER:
        return lambda e: (e.identifier.casefold(), e.identifier)
    if sort_by is SortField.URL:
        return lambda e: (e.url.casefold(), e.url)
    if sort_by is SortField.TITLE:
        return lambda e: (e.title.casefold(), e.title)
    if sort_by is SortField.AUTHOR:
        # Entries without an author go after the rest
        return lambda e: (e.author is None, (e.author or "").casefold())
    return lambda e: (e.date_added,)


def _casefold(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value.casefold() if value else None


class Query:
    """
    A validated query against an EntryStore.

    Building a Query resolves date expressions (relative ones against
    ``today``, read once) and checks the sort field. Iterating it reads
    the store's current contents each time, so the same Query can be
    iterated again after the store changes.
    """

    def __init__(
        self,
        store: EntryStore,
        spec: Optional[FilterSpec] = None,
        today: Union[date, Clock, None] = None,
    ):
        spec = spec or FilterSpec()
        if today is None:
            today = date.today
        current = today() if callable(today) else today

        limit = spec.limit or 0
        if limit < 0:
            raise InvalidQuery(f"Limit must not be negative: {limit}")

        self._store = store
        self._spec = _Resolved(
            name_substring=_casefold(spec.name_substring),
            url_substring=_casefold(spec.url_substring),
            author=_casefold(spec.author),
            topics=normalize_topics(spec.topics),
            date_from=(resolve_date_expression(spec.date_from, current)
                       if spec.date_from is not None else None),
            date_to=(resolve_date_expression(spec.date_to, current)
                     if spec.date_to is not None else None),
            date_equals=(resolve_date_expression(spec.date_token, current)
                         if spec.date_token is not None else None),
            sort_by=SortField.parse(spec.sort_by),
            descending=spec.descending,
            limit=limit,
        )
        logger.debug("Query: %s", self._spec)

    @property
    def sort_by(self) -> SortField:
        return self._spec.sort_by

    def __iter__(self) -> Iterator[Entry]:
        spec = self._spec
        matched = [e for e in self._store.list_all() if spec.matches(e)]

        # Identifier order first so equal sort keys keep it (sorts are stable)
        matched.sort(key=lambda e: e.identifier)
        matched.sort(key=_sort_key(spec.sort_by), reverse=spec.descending)

        for n, entry in enumerate(matched):
            if spec.limit and n >= spec.limit:
                return
            yield entry


def run_query(
    store: EntryStore,
    spec: Optional[FilterSpec] = None,
    today: Union[date, Clock, None] = None,
) -> list[Entry]:
    """Evaluate a filter specification and return the matches as a list."""
    return list(Query(store, spec, today=today))

"""The Link record shared by every browser adapter and the cache."""
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# Timestamp for entries whose source records no date; sorts below every dated link
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Link:
    """A discovered bookmark, history entry or page reference.

    The ``id`` is the storage key. Adapters should supply a stable id
    (e.g. a Firefox guid); when it is left empty the URL is used instead.
    ``url_keyed`` records that the id was defaulted that way; it is
    carried through copies and never persisted.
    ``score`` is only ever set on search results and is never persisted.
    """
    url: str
    title: str = ""
    id: str = ""
    subtitle: Optional[str] = None
    source: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)
    score: Optional[float] = None
    url_keyed: Optional[bool] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.url_keyed is None:
            self.url_keyed = not self.id
        if not self.id:
            self.id = self.url
        self.timestamp = as_utc(self.timestamp)

    @property
    def key(self) -> str:
        """Unique storage key for this link."""
        return self.id or self.url

    def with_subtitle(self, subtitle: Optional[str]) -> "Link":
        return replace(self, subtitle=subtitle)

    def with_timestamp_seconds(self, seconds: float) -> "Link":
        return replace(self, timestamp=datetime.fromtimestamp(seconds, tz=timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary.

        Returns:
            Dict with an ISO-8601 timestamp; fields that are None are omitted
        """
        data = asdict(self)
        del data["url_keyed"]
        data["timestamp"] = self.timestamp.isoformat()
        return {k: v for k, v in data.items() if v is not None}

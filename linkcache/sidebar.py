"""Arc sidebar document model and breadcrumb resolution.

Arc stores its pinned tabs, folders and spaces in StorableSidebar.json:

  {"sidebar": {"containers": [
      {"global": {}},
      {"spaces": [<space or id string>, ...],
       "items":  [<folder, bookmark or id string>, ...]}
  ]}}

Items carry no type tag. A folder is recognised by a ``data.list`` or
``data.itemContainer`` payload, a bookmark by a ``data.tab`` payload.
Anything else (Arc interleaves bare id strings) is kept as an opaque
Value so the document can be written back unchanged.

Typical use:

  document = SidebarDocument.load(path)
  item_map = build_item_map(document)
  for bookmark in document.bookmarks():
      subtitle = ancestor_titles(item_map, resolve_parent_id(bookmark))
"""
import copy
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from linkcache.errors import SourceError


SEPARATOR = " / "
MAX_DEPTH = 64  # Upper bound on parent hops; real sidebars nest a handful deep

# data.itemContainer.containerType.spaceItems._0 holds the owning space id
SPACE_POINTER = ("itemContainer", "containerType", "spaceItems", "_0")


@dataclass(frozen=True)
class Space:
    """Root container of a sidebar tree."""
    id: str
    title: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def effective_title(self) -> str:
        return self.title or ""


@dataclass(frozen=True)
class Folder:
    """A sidebar folder (or Arc's internal per-space item container)."""
    id: str
    title: Optional[str] = None
    parent_id: Optional[str] = None
    children_ids: Tuple[str, ...] = ()
    data: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def effective_title(self) -> str:
        return self.title or ""


@dataclass(frozen=True)
class Bookmark:
    """A saved tab pinned in the sidebar."""
    id: str
    title: Optional[str] = None
    saved_title: Optional[str] = None
    saved_url: Optional[str] = None
    parent_id: Optional[str] = None
    created_at: Optional[float] = None  # Seconds since 2001-01-01 UTC
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def effective_title(self) -> str:
        """Human-assigned title, falling back to the saved page title."""
        if self.title:
            return self.title
        return self.saved_title or ""

    @property
    def url(self) -> str:
        return self.saved_url or ""


@dataclass(frozen=True)
class Value:
    """An item that is neither a folder nor a bookmark."""
    raw: Any = None


Node = Union[Space, Folder, Bookmark]
SidebarItem = Union[Folder, Bookmark, Value]


# ============================================================================
# Classification
# ============================================================================

def _optional_str(raw: Dict[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    if value is None or isinstance(value, str):
        return value
    raise TypeError(f"{key} must be a string, got {type(value).__name__}")


def _optional_number(raw: Dict[str, Any], key: str) -> Optional[float]:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{key} must be a number, got {type(value).__name__}")
    return float(value)


def _required_str(raw: Dict[str, Any], key: str) -> str:
    value = _optional_str(raw, key)
    if value is None:
        raise KeyError(key)
    return value


def _decode_folder(raw: Dict[str, Any]) -> Folder:
    children = raw.get("childrenIds") or []
    if not isinstance(children, list) or not all(isinstance(c, str) for c in children):
        raise TypeError("childrenIds must be a list of strings")

    return Folder(
        id=_required_str(raw, "id"),
        title=_optional_str(raw, "title"),
        parent_id=_optional_str(raw, "parentID"),
        children_ids=tuple(children),
        data=raw["data"],
        raw=raw,
    )


def _decode_bookmark(raw: Dict[str, Any]) -> Bookmark:
    tab = raw["data"]["tab"]
    if not isinstance(tab, dict):
        raise TypeError("data.tab must be an object")

    return Bookmark(
        id=_required_str(raw, "id"),
        title=_optional_str(raw, "title"),
        saved_title=_optional_str(tab, "savedTitle"),
        saved_url=_optional_str(tab, "savedURL"),
        parent_id=_optional_str(raw, "parentID"),
        created_at=_optional_number(raw, "createdAt"),
        raw=raw,
    )


def classify_item(raw: Any) -> SidebarItem:
    """Classify one entry of a sidebar ``items`` array.

    Folder shape is tried before bookmark shape. An item whose shape
    matches but whose fields do not decode falls through to the next
    shape and finally to Value; it never raises.

    Args:
        raw: Raw JSON value from the items array

    Returns:
        Folder, Bookmark or Value
    """
    if not isinstance(raw, dict):
        return Value(raw)

    data = raw.get("data")
    if not isinstance(data, dict):
        return Value(raw)

    if "list" in data or "itemContainer" in data:
        try:
            return _decode_folder(raw)
        except (KeyError, TypeError):
            pass

    if "tab" in data:
        try:
            return _decode_bookmark(raw)
        except (KeyError, TypeError):
            pass

    return Value(raw)


def classify_space(raw: Any) -> Union[Space, Value]:
    """Classify one entry of a sidebar ``spaces`` array."""
    if not isinstance(raw, dict):
        return Value(raw)
    try:
        return Space(id=_required_str(raw, "id"), title=_optional_str(raw, "title"), raw=raw)
    except (KeyError, TypeError):
        return Value(raw)


# ============================================================================
# Parent resolution
# ============================================================================

def _explicit_parent(node: Node) -> Optional[str]:
    return getattr(node, "parent_id", None) or None


def _space_pointer(node: Node) -> Optional[str]:
    if not isinstance(node, Folder):
        return None

    current: Any = node.data
    for key in SPACE_POINTER:
        if not isinstance(current, dict):
            return None
        current = current.get(key)

    return current if isinstance(current, str) and current else None


# Tried in order; the explicit parentID field takes precedence
PARENT_STRATEGIES: Tuple[Callable[[Node], Optional[str]], ...] = (
    _explicit_parent,
    _space_pointer,
)


def resolve_parent_id(node: Node) -> Optional[str]:
    """Get the identifier of a node's parent.

    Args:
        node: Space, Folder or Bookmark

    Returns:
        Parent id, or None for spaces and orphaned nodes
    """
    for strategy in PARENT_STRATEGIES:
        parent_id = strategy(node)
        if parent_id:
            return parent_id
    return None


def parent_conflict(node: Node) -> Optional[Tuple[str, str]]:
    """Return (explicit, pointer) when a folder's two parent sources disagree."""
    explicit = _explicit_parent(node)
    pointer = _space_pointer(node)
    if explicit and pointer and explicit != pointer:
        return explicit, pointer
    return None


# ============================================================================
# Document
# ============================================================================

@dataclass(frozen=True)
class Container:
    """One entry of ``sidebar.containers``.

    Containers without spaces/items (Arc's "global" container) keep only
    their raw value.
    """
    raw: Any
    spaces: Tuple[Union[Space, Value], ...] = ()
    items: Tuple[SidebarItem, ...] = ()
    has_tree: bool = False

    @classmethod
    def from_raw(cls, raw: Any) -> "Container":
        if not isinstance(raw, dict):
            return cls(raw=raw)

        spaces = raw.get("spaces")
        items = raw.get("items")
        if not isinstance(spaces, list) or not isinstance(items, list):
            return cls(raw=raw)

        return cls(
            raw=raw,
            spaces=tuple(classify_space(s) for s in spaces),
            items=tuple(classify_item(i) for i in items),
            has_tree=True,
        )

    def to_raw(self) -> Any:
        if not self.has_tree:
            return copy.deepcopy(self.raw)
        raw = copy.deepcopy(self.raw)
        raw["spaces"] = [copy.deepcopy(s.raw) for s in self.spaces]
        raw["items"] = [copy.deepcopy(i.raw) for i in self.items]
        return raw


class SidebarDocument:
    """A parsed StorableSidebar.json document.

    The document is read-only. Breadcrumb lookups go through an item map
    the caller builds once with build_item_map().
    """

    def __init__(self, containers: List[Container], raw: Optional[Dict[str, Any]] = None):
        self.containers = tuple(containers)
        self._raw = raw if raw is not None else {"sidebar": {"containers": []}}

    @classmethod
    def from_dict(cls, raw: Any) -> "SidebarDocument":
        """Parse a decoded StorableSidebar.json document.

        Raises:
            SourceError: If the document is not a JSON object
        """
        if not isinstance(raw, dict):
            raise SourceError("Sidebar document must be a JSON object")

        sidebar = raw.get("sidebar")
        containers = sidebar.get("containers") if isinstance(sidebar, dict) else None
        if not isinstance(containers, list):
            containers = []

        return cls([Container.from_raw(c) for c in containers], raw)

    @classmethod
    def from_parts(cls, spaces: List[Any], items: List[Any]) -> "SidebarDocument":
        """Build a single-container document from bare spaces and items lists."""
        raw = {"sidebar": {"containers": [{"spaces": spaces, "items": items}]}}
        return cls.from_dict(raw)

    @classmethod
    def load(cls, path: Path) -> "SidebarDocument":
        """Load and parse a StorableSidebar.json file.

        Raises:
            SourceError: If the file is missing, unreadable or not JSON
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SourceError(f"Could not read Arc sidebar at {path}: {e}") from e

        return cls.from_dict(raw)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the original JSON shape."""
        raw = copy.deepcopy(self._raw)
        if isinstance(raw.get("sidebar"), dict) and isinstance(raw["sidebar"].get("containers"), list):
            raw["sidebar"]["containers"] = [c.to_raw() for c in self.containers]
        return raw

    def spaces(self) -> List[Space]:
        return [s for c in self.containers for s in c.spaces if isinstance(s, Space)]

    def items(self) -> List[SidebarItem]:
        return [i for c in self.containers for i in c.items]

    def folders(self) -> List[Folder]:
        return [i for i in self.items() if isinstance(i, Folder)]

    def bookmarks(self) -> List[Bookmark]:
        """Get every bookmark in document order."""
        return [i for i in self.items() if isinstance(i, Bookmark)]


def build_item_map(document: SidebarDocument) -> Mapping[str, Node]:
    """Index every space, folder and bookmark of a document by id.

    Folders whose explicit parentID disagrees with their space pointer
    are reported on stderr; the explicit field is used.

    Args:
        document: Parsed sidebar document

    Returns:
        Read-only mapping of id to node
    """
    item_map: Dict[str, Node] = {}

    for space in document.spaces():
        item_map[space.id] = space

    for item in document.items():
        if isinstance(item, Value):
            continue
        item_map[item.id] = item

        conflict = parent_conflict(item)
        if conflict:
            print(
                f"[Sidebar] Folder {item.id}: parentID {conflict[0]} disagrees with "
                f"space pointer {conflict[1]}; using parentID",
                file=sys.stderr,
            )

    return MappingProxyType(item_map)


def ancestor_titles(item_map: Mapping[str, Node], start_id: Optional[str]) -> str:
    """Build the breadcrumb for a node, starting at its parent.

    Walks parent links from ``start_id`` up to a space, collecting
    non-empty folder and space titles. Bookmarks met on the way are
    stepped over. The walk stops at unknown ids, at a revisited id and
    after MAX_DEPTH hops, so malformed documents cannot loop forever.

    Args:
        item_map: Mapping from build_item_map()
        start_id: Id of the leaf's parent

    Returns:
        Titles joined root-to-leaf with " / ", or "" if there are none
    """
    titles: List[str] = []
    visited = set()
    current = start_id

    while current and current not in visited and len(visited) < MAX_DEPTH:
        visited.add(current)
        node = item_map.get(current)

        if node is None:
            break

        if isinstance(node, Space):
            if node.effective_title:
                titles.insert(0, node.effective_title)
            break

        if isinstance(node, Folder) and node.effective_title:
            titles.insert(0, node.effective_title)

        current = resolve_parent_id(node)

    return SEPARATOR.join(titles)


def breadcrumb(item_map: Mapping[str, Node], bookmark: Bookmark) -> Optional[str]:
    """Get a bookmark's breadcrumb, or None when it has no titled ancestors."""
    return ancestor_titles(item_map, resolve_parent_id(bookmark)) or None

"""Reading List lookup and mutation on Safari bookmark documents.

Safari keeps the Reading List as a top-level child of Bookmarks.plist::

    {"Children": [..., {"Title": "com.apple.ReadingList",
                        "Children": [{"URLString": "...", ...}, ...]}]}

Everything here is a pure document transform; saving is up to the caller.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from safari_reading_list.config import READING_LIST_TITLE
from safari_reading_list.errors import StructureMismatch
from safari_reading_list.plist_value import (
    Date,
    Mapping,
    Sequence,
    String,
    Value,
    expect_mapping,
    expect_sequence,
    format_date,
    string_value,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadingListLocation:
    """Where the Reading List node sits inside a document."""
    document: Mapping
    children: Sequence
    index: int
    node: Mapping


def find_reading_list(
    root: Value,
    title: str = READING_LIST_TITLE,
    log: Optional[logging.Logger] = None,
) -> Optional[ReadingListLocation]:
    """Find the first top-level child whose ``Title`` equals ``title``.

    Returns:
        The node and its position, or None if the document has no such child
    """
    log = log or logger
    try:
        document = expect_mapping(root, "bookmarks document")
        children = expect_sequence(document.get("Children"), "top-level Children")
    except StructureMismatch as e:
        log.info("No Children array found in bookmarks data: %s", e)
        return None

    log.debug("Found %d top-level children", len(children))
    for index, child in enumerate(children):
        if isinstance(child, Mapping) and string_value(child.get("Title")) == title:
            return ReadingListLocation(document, children, index, child)

    log.info("No %s node found in bookmarks data", title)
    return None


def _item_url(item: Value) -> Optional[str]:
    if isinstance(item, Mapping):
        return string_value(item.get("URLString"))
    return None


def delete_by_url(
    root: Value,
    url: str,
    title: str = READING_LIST_TITLE,
    log: Optional[logging.Logger] = None,
) -> Tuple[Value, bool]:
    """Remove every Reading List entry whose ``URLString`` equals ``url``.

    Matching is exact and case-sensitive. A document without a Reading List,
    or with one whose ``Children`` is not an array, is left untouched.

    Args:
        root: Bookmarks document
        url: URL of the entries to remove
        title: Title of the list node to edit
        log: Logger for progress details

    Returns:
        Tuple of (document, removed). The document is ``root`` itself when
        nothing was removed.
    """
    log = log or logger
    location = find_reading_list(root, title, log)
    if location is None:
        return root, False

    try:
        items = expect_sequence(location.node.get("Children"), "Reading List Children")
    except StructureMismatch as e:
        log.info("Reading List has no Children array: %s", e)
        return root, False

    log.debug("Reading List has %d items", len(items))
    kept = tuple(item for item in items if _item_url(item) != url)
    removed_count = len(items) - len(kept)
    if removed_count == 0:
        log.info("URL not found in reading list: %s", url)
        return root, False

    log.info("Updating Reading List with %d items (removed %d)", len(kept), removed_count)
    node = location.node.with_entry("Children", Sequence(kept))
    children = location.children.replace(location.index, node)
    return location.document.with_entry("Children", children), True


def _text(mapping: Optional[Value], key: str) -> Optional[str]:
    if not isinstance(mapping, Mapping):
        return None
    value = mapping.get(key)
    if isinstance(value, String):
        return value.value
    if isinstance(value, Date):
        return format_date(value.value)
    return None


def reading_list_items(
    root: Value,
    title: str = READING_LIST_TITLE,
    log: Optional[logging.Logger] = None,
) -> List[Dict[str, Any]]:
    """Flatten Reading List entries into simple records.

    Args:
        root: Bookmarks document
        title: Title of the list node to read

    Returns:
        List of dicts with 'url' and 'title' keys, plus 'dateAdded',
        'dateLastViewed', 'previewText', 'siteName' and 'dateLastFetched'
        when the entry carries them.
    """
    location = find_reading_list(root, title, log)
    if location is None:
        return []

    children = location.node.get("Children")
    if not isinstance(children, Sequence):
        return []

    items = []
    for entry in children:
        if not isinstance(entry, Mapping):
            continue
        non_sync = entry.get("ReadingListNonSync")
        synced = entry.get("ReadingList")
        uri_dict = entry.get("URIDictionary")

        item = {
            "url": _text(entry, "URLString") or "",
            "title": _text(non_sync, "Title") or _text(uri_dict, "title") or "Untitled",
        }
        optional = {
            "dateAdded": _text(synced, "DateAdded"),
            "dateLastViewed": _text(synced, "DateLastViewed"),
            "previewText": _text(non_sync, "PreviewText") or _text(synced, "PreviewText"),
            "siteName": _text(non_sync, "siteName"),
            "dateLastFetched": _text(non_sync, "DateLastFetched"),
        }
        item.update({key: value for key, value in optional.items() if value is not None})
        items.append(item)

    return items

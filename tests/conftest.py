"""Shared fixtures for tests."""
import io
import json
import logging
import plistlib
import struct
import sys
from datetime import datetime

import pytest

from safari_reading_list.config import Config
from safari_reading_list.host import ReadingListHost
from safari_reading_list.messaging import MessageChannel
from safari_reading_list.plist_value import from_native


SAMPLE_BOOKMARKS = {
    "Title": "",
    "WebBookmarkFileVersion": 1,
    "WebBookmarkType": "WebBookmarkTypeList",
    "WebBookmarkUUID": "Root",
    "Children": [
        {
            "Title": "History",
            "WebBookmarkIdentifier": "History",
            "WebBookmarkType": "WebBookmarkTypeProxy",
        },
        {
            "Title": "BookmarksBar",
            "WebBookmarkType": "WebBookmarkTypeList",
            "Children": [
                {
                    "URIDictionary": {"title": "Python Docs"},
                    "URLString": "https://docs.python.org",
                    "WebBookmarkType": "WebBookmarkTypeLeaf",
                },
            ],
        },
        {
            "Title": "com.apple.ReadingList",
            "WebBookmarkType": "WebBookmarkTypeList",
            "ShouldOmitFromUI": True,
            "Children": [
                {
                    "URIDictionary": {"title": "PEP 8"},
                    "URLString": "https://peps.python.org/pep-0008/",
                    "WebBookmarkType": "WebBookmarkTypeLeaf",
                    "ReadingList": {
                        "DateAdded": datetime(2024, 1, 2, 3, 4, 5),
                        "PreviewText": "Style Guide for Python Code",
                    },
                    "ReadingListNonSync": {
                        "Title": "PEP 8 – Style Guide",
                        "siteName": "peps.python.org",
                        "DateLastFetched": datetime(2024, 1, 3, 0, 0, 0),
                    },
                },
                {
                    "URIDictionary": {"title": "SQLite"},
                    "URLString": "https://sqlite.org",
                    "WebBookmarkType": "WebBookmarkTypeLeaf",
                    "ReadingList": {
                        "DateAdded": datetime(2024, 2, 1, 12, 0, 0),
                        "DateLastViewed": datetime(2024, 2, 2, 8, 30, 0),
                    },
                },
                {
                    "URLString": "https://example.com/untitled",
                    "WebBookmarkType": "WebBookmarkTypeLeaf",
                    "Sync": {"Key": "xyz", "Data": b"\x00\x01\x02"},
                },
            ],
        },
    ],
}

@pytest.fixture
def sample_bookmarks_path(tmp_path):
    """Create a temporary binary Bookmarks.plist with sample data."""
    bookmarks_file = tmp_path / "Bookmarks.plist"
    bookmarks_file.write_bytes(plistlib.dumps(SAMPLE_BOOKMARKS, fmt=plistlib.FMT_BINARY))
    return bookmarks_file


@pytest.fixture
def xml_bookmarks_path(tmp_path):
    """Same sample data stored as an XML plist."""
    bookmarks_file = tmp_path / "Bookmarks.plist"
    bookmarks_file.write_bytes(plistlib.dumps(SAMPLE_BOOKMARKS, fmt=plistlib.FMT_XML))
    return bookmarks_file


@pytest.fixture
def quiet_logger():
    """Logger that discards everything."""
    log = logging.getLogger("tests.quiet")
    log.addHandler(logging.NullHandler())
    log.propagate = False
    return log


def frame(message) -> bytes:
    """Encode a request the way the browser does."""
    payload = json.dumps(message).encode("utf-8")
    return struct.pack("=I", len(payload)) + payload


def read_frames(raw: bytes) -> list:
    """Decode every response frame written to an output stream."""
    messages = []
    offset = 0
    while offset < len(raw):
        (length,) = struct.unpack("=I", raw[offset:offset + 4])
        offset += 4
        messages.append(json.loads(raw[offset:offset + length].decode("utf-8")))
        offset += length
    return messages


@pytest.fixture
def run_host(quiet_logger):
    """Feed requests to a host and return (exit status, responses)."""

    def _run(requests, bookmarks_path, raw_input: bytes = b""):
        reader = io.BytesIO(b"".join(frame(r) for r in requests) + raw_input)
        writer = io.BytesIO()
        channel = MessageChannel(reader, writer, log=quiet_logger)
        host = ReadingListHost(channel, Config(bookmarks_path=bookmarks_path), log=quiet_logger)
        status = host.run()
        return status, read_frames(writer.getvalue())

    return _run


@pytest.fixture
def sample_document():
    """Sample bookmarks as a document value."""
    return from_native(SAMPLE_BOOKMARKS)


@pytest.fixture
def reading_list_document():
    """Build a minimal document whose Reading List holds ``items``."""

    def _build(items):
        return from_native({"Children": [{"Title": "com.apple.ReadingList", "Children": items}]})

    return _build


@pytest.fixture
def deeply_nested_plist_path(tmp_path):
    """XML plist whose Reading List item nests arrays past the recursion limit."""
    depth = sys.getrecursionlimit() * 2
    nested = "<array>" * depth + "</array>" * depth
    xml = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" '
        '"http://www.apple.com/DTDs/PropertyList-1.0.dtd">\n'
        '<plist version="1.0"><dict>'
        "<key>Children</key><array><dict>"
        "<key>Title</key><string>com.apple.ReadingList</string>"
        "<key>Children</key><array><dict>"
        "<key>URLString</key><string>https://example.com/deep</string>"
        f"<key>Extra</key>{nested}"
        "</dict></array>"
        "</dict></array>"
        "</dict></plist>\n"
    )
    bookmarks_file = tmp_path / "Bookmarks.plist"
    bookmarks_file.write_text(xml, encoding="utf-8")
    return bookmarks_file

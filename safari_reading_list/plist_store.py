"""Safari bookmarks plist store with read and atomic write capabilities."""
import logging
import os
import plistlib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from xml.parsers.expat import ExpatError

from safari_reading_list.errors import DecodeFailure, IOFailure
from safari_reading_list.plist_value import Value, from_native, to_native


logger = logging.getLogger(__name__)

BINARY_MAGIC = b"bplist00"


@dataclass(frozen=True)
class PlistDocument:
    """A decoded plist together with the on-disk format it came from."""
    root: Value
    fmt: plistlib.PlistFormat = plistlib.FMT_BINARY


def backup_path_for(path: Path) -> Path:
    """Return the sibling backup path (``Bookmarks.plist.bak``)."""
    return path.with_name(path.name + ".bak")


def load_document(path: Path) -> PlistDocument:
    """Load a plist file.

    Args:
        path: Path to the plist file

    Returns:
        The decoded document, remembering whether the file was binary or XML

    Raises:
        IOFailure: If the file is missing or unreadable
        DecodeFailure: If the file is not a valid plist
    """
    try:
        with open(path, "rb") as f:
            raw = f.read()
    except OSError as e:
        raise IOFailure(f"Error opening bookmarks file: {e}") from e

    fmt = plistlib.FMT_BINARY if raw.startswith(BINARY_MAGIC) else plistlib.FMT_XML
    try:
        native = plistlib.loads(raw, fmt=fmt)
        root = from_native(native)
    except (
        plistlib.InvalidFileException,
        ExpatError,
        ValueError,
        TypeError,
        OverflowError,
        RecursionError,
    ) as e:
        raise DecodeFailure(f"Error decoding plist: {e}") from e

    return PlistDocument(root=root, fmt=fmt)


def save_document(
    document: PlistDocument,
    path: Path,
    log: Optional[logging.Logger] = None,
) -> None:
    """Replace the plist at ``path`` with ``document``.

    The existing file is first renamed to ``<path>.bak``. If the new file
    cannot be created or encoded, the backup is renamed back so a valid file
    stays at ``path``. On success the backup is removed; failing to remove it
    only leaves a stray ``.bak`` behind.

    Args:
        document: Document to write
        path: Path to the plist file
        log: Logger for progress and failure details

    Raises:
        IOFailure: If the backup cannot be made or the new file cannot be written
        DecodeFailure: If the document cannot be encoded as a plist
    """
    log = log or logger
    backup_path = backup_path_for(path)

    try:
        path.replace(backup_path)
    except OSError as e:
        log.error("Error creating backup: %s", e)
        raise IOFailure(f"Error creating backup: {e}") from e
    log.info("Created backup at: %s", backup_path)

    try:
        new_file = open(path, "wb")
    except OSError as e:
        log.error("Error creating new bookmarks file: %s", e)
        _restore_backup(backup_path, path, log)
        raise IOFailure(f"Error creating new bookmarks file: {e}") from e

    try:
        with new_file:
            plistlib.dump(to_native(document.root), new_file, fmt=document.fmt, sort_keys=False)
            new_file.flush()
            os.fsync(new_file.fileno())
    except OSError as e:
        log.error("Error writing bookmarks file: %s", e)
        _restore_backup(backup_path, path, log)
        raise IOFailure(f"Error writing bookmarks file: {e}") from e
    except (TypeError, ValueError, OverflowError, RecursionError) as e:
        log.error("Error encoding plist: %s", e)
        _restore_backup(backup_path, path, log)
        raise DecodeFailure(f"Error encoding plist: {e}") from e
    except BaseException:
        log.error("Interrupted while writing bookmarks file")
        _restore_backup(backup_path, path, log)
        raise

    try:
        backup_path.unlink()
    except OSError as e:
        log.warning("Could not remove backup %s: %s", backup_path, e)


def _restore_backup(backup_path: Path, path: Path, log: logging.Logger) -> None:
    try:
        backup_path.replace(path)
    except OSError as e:
        log.error("Error restoring backup %s: %s", backup_path, e)
    else:
        log.info("Restored bookmarks file from backup")

"""Configuration for the Safari Reading List native host."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


READING_LIST_TITLE = "com.apple.ReadingList"
MAX_MESSAGE_SIZE = 1024 * 1024  # Chrome/Safari native messaging limit (1MB)
LOG_FILE_NAME = "safari_reading_list.log"


def _home() -> Optional[Path]:
    try:
        return Path.home()
    except (KeyError, RuntimeError, OSError):
        # No HOME and no passwd entry for the current user
        return None


def get_safari_bookmarks_path() -> Optional[Path]:
    """Get the path to Safari's bookmarks file.

    Returns:
        Path to ~/Library/Safari/Bookmarks.plist, or None if the home
        directory cannot be determined
    """
    home = _home()
    if home is None:
        return None
    return home / "Library" / "Safari" / "Bookmarks.plist"


def get_log_path() -> Optional[Path]:
    """Get the path of the diagnostic log file on the user's desktop."""
    home = _home()
    if home is None:
        return None
    return home / "Desktop" / LOG_FILE_NAME


@dataclass
class Config:
    """Main configuration for the native host."""
    bookmarks_path: Optional[Path] = None  # None = resolve under home directory
    log_path: Optional[Path] = None  # None = resolve under home directory
    log_level: str = "INFO"
    reading_list_title: str = READING_LIST_TITLE
    max_message_size: int = MAX_MESSAGE_SIZE

    def __post_init__(self):
        # Browsers reject larger frames, so the limit can only be lowered
        self.max_message_size = min(self.max_message_size, MAX_MESSAGE_SIZE)

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables."""
        bookmarks_str = os.environ.get("SAFARI_READING_LIST_BOOKMARKS")
        log_str = os.environ.get("SAFARI_READING_LIST_LOG")

        return cls(
            bookmarks_path=Path(bookmarks_str) if bookmarks_str else None,
            log_path=Path(log_str) if log_str else None,
            log_level=os.environ.get("SAFARI_READING_LIST_LOG_LEVEL", "INFO").upper(),
            reading_list_title=os.environ.get("SAFARI_READING_LIST_TITLE", READING_LIST_TITLE),
            max_message_size=int(os.environ.get("SAFARI_READING_LIST_MAX_MESSAGE", str(MAX_MESSAGE_SIZE))),
        )

    def resolve_bookmarks_path(self) -> Optional[Path]:
        return self.bookmarks_path or get_safari_bookmarks_path()

    def resolve_log_path(self) -> Optional[Path]:
        return self.log_path or get_log_path()


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global config instance.

    Returns:
        Config loaded from environment
    """
    global _config

    if _config is None:
        _config = Config.from_env()

    return _config

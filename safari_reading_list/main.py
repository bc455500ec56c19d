"""Main entry point for the Safari Reading List native host.

Launched by the browser when the extension sends a native message. Takes no
arguments and runs until the browser closes stdin.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from safari_reading_list.config import Config, get_config
from safari_reading_list.host import ReadingListHost
from safari_reading_list.messaging import MessageChannel


LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(log_path: Path, level: str = "INFO") -> logging.Logger:
    """Append package logs to ``log_path``.

    Never logs to stdout, which carries the native messaging frames.

    Raises:
        OSError: If the log file cannot be opened
    """
    handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    log = logging.getLogger("safari_reading_list")
    log.handlers = [handler]
    log.setLevel(level)
    log.propagate = False
    return log


def main(config: Optional[Config] = None) -> int:
    try:
        config = config or get_config()
    except ValueError as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    log_path = config.resolve_log_path()
    if log_path is None:
        print("Error initializing log file: could not determine home directory", file=sys.stderr)
        return 1
    try:
        log = configure_logging(log_path, config.log_level)
    except (OSError, ValueError) as e:
        print(f"Error initializing log file: {e}", file=sys.stderr)
        return 1

    channel = MessageChannel(
        sys.stdin.buffer,
        sys.stdout.buffer,
        max_message_size=config.max_message_size,
        log=log.getChild("messaging"),
    )
    host = ReadingListHost(channel, config, log=log.getChild("host"))
    log.info("Native host started")
    try:
        return host.run()
    finally:
        for handler in log.handlers:
            handler.close()


if __name__ == "__main__":
    sys.exit(main())

"""Native messaging host for the Safari Reading List browser extension."""

"""SQLite persistence: connection management and schema DDL."""

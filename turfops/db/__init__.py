"""SQLite record store for readings and the application log."""

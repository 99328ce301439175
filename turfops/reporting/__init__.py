"""Plain-text formatters and file exports for engine output."""

"""Data providers the rules engine pulls readings and application history from."""

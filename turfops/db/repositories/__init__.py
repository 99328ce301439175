"""Repositories speaking TurfOps models over a shared ``sqlite3.Connection``."""

"""Database __init__.py"""
from .db import init_db, get_db, close_db
from .models import (
    add_help_thread,
    get_threads_created_by,
    purge_help_threads,
)

__all__ = [
    "init_db", "get_db", "close_db",
    "add_help_thread", "get_threads_created_by", "purge_help_threads",
]

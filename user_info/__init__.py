"""
user-info: per-user preferences, sessions, saved searches and bags served as
JSON over HTTP from a relational database.

The FastAPI application lives in ``user_info.app``; storage backends (SQL and
in-memory) live in ``user_info.records`` and ``user_info.bags``.
"""

__version__ = "2.9.0"

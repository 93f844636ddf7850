"""
Database package for Warden.

Provides the case store: guild and member upserts, note/warning/mute cases and
mute lifecycle updates on top of a single aiosqlite connection. Row-level SQL
lives in ``warden.repositories``.

Public API:
    - Database: Case store coordinator
"""

"""API routers."""

from hsk_tutor.routers import content, exam, history, lookup, review, session

__all__ = ["content", "exam", "history", "lookup", "review", "session"]

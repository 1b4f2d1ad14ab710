"""
Unit Tests

Unit tests run in isolation without external dependencies.
Redis and the content provider are replaced by in-memory doubles.
"""

"""
HSK Tutor Test Suite

Test Structure:
    tests/
    ├── conftest.py                  # Test environment, fake provider, in-memory Redis
    └── unit/                        # Unit tests (isolated, no external services)
        ├── test_config.py           # Settings and YAML configuration
        ├── test_redis_store.py      # KeyValueStore (mocked Redis)
        ├── test_pool_cache.py       # Pooling, paging, cursor, single-flight
        ├── test_scheduler.py        # Spaced repetition scheduling
        ├── test_exam.py             # Timed exam state machine
        └── test_api.py              # HTTP layer via TestClient

Running Tests:
    # Run all tests
    pytest backend/tests/ -v

    # Run with coverage
    pytest backend/tests/ --cov=hsk_tutor --cov-report=html
"""

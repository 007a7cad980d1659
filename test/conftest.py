"""
Test Configuration and Fixtures

Environment setup MUST happen before any application import: settings and the
loguru sinks are built at import time.
"""

import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    """Set test environment variables before any module imports."""
    # Create test log directory
    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    # No Kvrocks in unit tests
    os.environ['DRAFT_STORE_BACKEND'] = 'memory'
    os.environ['DRAFT_KEY_PREFIX'] = 'test_'


_early_setup_test_environment()

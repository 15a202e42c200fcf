"""Helper functions and utilities for testing.

This module provides reusable test utilities across the test suite.
All database fixtures have been moved to conftest.py files for better pytest integration.
"""

# Note: All database fixtures are now in tests/conftest.py

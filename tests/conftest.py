"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the testing environment before any settings are imported so that
no local .env file leaks into the test run.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("APP_ENV", "testing")

os.environ.setdefault("RATELIMIT_STORE", "memory")
os.environ.setdefault("RATELIMIT_METHODS", "POST")
os.environ.setdefault("RATELIMIT_REQUESTS", "10")
os.environ.setdefault("RATELIMIT_WINDOW_SECONDS", "60")

"""Pytest bootstrap configuration.

Point settings at an in-memory database and known LINE Pay sandbox
credentials before any application module is imported.
"""
import os

os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("LINEPAY__PAYMENT_MODE", "test")
os.environ.setdefault("LINEPAY__TEST_CHANNEL_ID", "1234567890")
os.environ.setdefault("LINEPAY__TEST_CHANNEL_SECRET", "test-channel-secret")

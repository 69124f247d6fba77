"""
Tests for notifications app.

This package contains test modules for:
- test_dispatch.py: post-commit dispatch and broker outages
- test_tasks.py: email delivery task and message rendering

Usage:
    pytest notifications/tests/
    pytest notifications/tests/test_tasks.py
"""

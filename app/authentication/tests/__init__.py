"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User model, manager and role checks
- test_views.py: JWT and current-user endpoints

Usage:
    pytest authentication/tests/
    pytest authentication/tests/test_models.py
"""

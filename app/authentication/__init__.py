"""
Authentication application.

Provides the email-based User model and its operational roles. The
services in allocation, lifecycle, audit and tiers take a User as the
acting party.

Usage:
    from authentication.models import User, UserRole
"""

"""
Tiers app.

Classifies users as regular, pro or vip from their completed orders and
delivered remittances, keeps the full history of tier changes, and lets
operators override the computed tier.
"""

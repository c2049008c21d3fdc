"""
Studiobase

Persistence layer for a creator platform: music releases, scripts,
photos and Stripe-backed donations.
"""

__version__ = "0.1.0"

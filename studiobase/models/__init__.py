"""
Database Models

SQLAlchemy ORM models for Studiobase.
"""

from studiobase.models.release import Release
from studiobase.models.script import Script
from studiobase.models.photo import Photo
from studiobase.models.donation import Donation

__all__ = ["Release", "Script", "Photo", "Donation"]

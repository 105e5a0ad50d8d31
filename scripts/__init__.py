"""
Scripts for MedTrack
Utility scripts for seeding demo data and watching caretaker activity
"""

from .seed_demo_data import seed_all

__all__ = [
    "seed_all",
]

"""SQLite storage for contracts, their stages, users, photos and deadline notifications."""

__version__ = "0.1.0"
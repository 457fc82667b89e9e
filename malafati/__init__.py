"""
Malafati Backend Package
========================

Flask-based backend for Malafati, the teacher file organizer.

Structure:
- routes/: API route blueprints
- services/: Google Drive client and folder provisioning
- models.py / db.py / storage.py: SQLite persistence
- config.py: Configuration management
"""

from .config import config, Config

__version__ = "1.0.0"

__all__ = ['config', 'Config']

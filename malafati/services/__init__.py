"""
Malafati Services
=================

Business logic services for the Malafati application.

Services:
- drive_client: Google Drive v3 calls for one teacher's Drive
- folder_service: student folder provisioning, uploads and cleanup
"""

# Services are imported directly when needed to avoid circular imports
# Example: from malafati.services.folder_service import provision_all

__all__ = [
    'drive_client',
    'folder_service',
]

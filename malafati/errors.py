"""
Error types for Drive provisioning.

Each error carries a stable ``code`` so API clients can branch on it
instead of parsing the (often verbatim Google) message text.
"""


class MalafatiError(Exception):
    code = "error"
    status = 500

    def to_dict(self):
        return {"error": str(self), "code": self.code}


class DriveNotConfiguredError(MalafatiError):
    """Teacher has no Drive root folder (or no Drive connection)."""
    code = "drive_not_configured"
    status = 400

    def __init__(self, message="Google Drive folder not configured"):
        super().__init__(message)


class FolderPathError(MalafatiError):
    """A list or create call failed while walking a folder path."""
    code = "folder_path_failed"
    status = 502


class DriveRequestError(MalafatiError):
    """Any other Drive call failed (permission, upload, delete)."""
    code = "drive_request_failed"
    status = 502


class BatchInProgressError(MalafatiError):
    code = "batch_in_progress"
    status = 409

    def __init__(self, teacher_id):
        super().__init__(f"Folder creation already running for teacher {teacher_id}")
        self.teacher_id = teacher_id

"""
Google Drive client for a teacher's Drive.

Wraps the Drive v3 API calls the folder service needs: folder lookup by
name under a parent, folder creation, link sharing, uploads and deletion.
Every request runs with a socket timeout and the client library's
exponential-backoff retries.
"""
from __future__ import annotations

import logging
import re
import threading
from typing import Optional
from urllib.parse import quote

import google_auth_httplib2
import httplib2
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaInMemoryUpload

from ..config import (
    DRIVE_HTTP_TIMEOUT, DRIVE_NUM_RETRIES, DRIVE_SCOPES,
    GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_TOKEN_URI,
)
from ..errors import DriveRequestError

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

_FOLDER_LINK_PATTERNS = [
    re.compile(r"/folders/([a-zA-Z0-9_-]+)"),
    re.compile(r"[?&]id=([a-zA-Z0-9_-]+)"),
    re.compile(r"^([a-zA-Z0-9_-]+)$"),
]


def _escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    def __init__(self, credentials, timeout: int = DRIVE_HTTP_TIMEOUT,
                 num_retries: int = DRIVE_NUM_RETRIES):
        self.credentials = credentials
        self.timeout = timeout
        self.num_retries = num_retries
        # httplib2 transports are not thread-safe; one service per thread
        self._local = threading.local()

    @property
    def drive(self):
        service = getattr(self._local, "service", None)
        if service is None:
            http = google_auth_httplib2.AuthorizedHttp(
                self.credentials, http=httplib2.Http(timeout=self.timeout)
            )
            service = build("drive", "v3", http=http, cache_discovery=False)
            self._local.service = service
        return service

    def _execute(self, request):
        return request.execute(num_retries=self.num_retries)

    def list_folders(self, name: str, parent_id: Optional[str] = None) -> list:
        q = f"name='{_escape_query_value(name)}' and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        if parent_id:
            q = f"'{parent_id}' in parents and " + q
        resp = self._execute(self.drive.files().list(
            q=q,
            fields="files(id,name)",
            spaces="drive",
        ))
        return resp.get("files", [])

    def create_folder(self, name: str, parent_id: Optional[str] = None) -> str:
        body = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent_id:
            body["parents"] = [parent_id]
        created = self._execute(self.drive.files().create(body=body, fields="id"))
        return created["id"]

    def share_with_anyone(self, file_id: str, role: str = "reader") -> None:
        try:
            self._execute(self.drive.permissions().create(
                fileId=file_id,
                body={"role": role, "type": "anyone"},
            ))
        except HttpError as e:
            raise DriveRequestError(str(e)) from e

    def create_file(self, parent_id: str, name: str, data: bytes, mime_type: str) -> dict:
        media = MediaInMemoryUpload(data, mimetype=mime_type or "application/octet-stream")
        try:
            created = self._execute(self.drive.files().create(
                body={"name": name, "parents": [parent_id]},
                media_body=media,
                fields="id,webViewLink",
            ))
        except HttpError as e:
            raise DriveRequestError(str(e)) from e
        return {
            "id": created["id"],
            "webViewLink": created.get("webViewLink") or file_view_url(created["id"]),
        }

    def delete_file(self, file_id: str) -> None:
        try:
            self._execute(self.drive.files().delete(fileId=file_id))
        except HttpError as e:
            raise DriveRequestError(str(e)) from e


def get_drive_client(teacher) -> Optional[DriveClient]:
    """Build a Drive client from the teacher's stored OAuth tokens.

    Returns None when the teacher never connected Google Drive.
    """
    if teacher is None or not teacher.access_token:
        return None
    credentials = Credentials(
        token=teacher.access_token,
        refresh_token=teacher.refresh_token or None,
        token_uri=GOOGLE_TOKEN_URI,
        client_id=GOOGLE_CLIENT_ID or None,
        client_secret=GOOGLE_CLIENT_SECRET or None,
        scopes=DRIVE_SCOPES,
    )
    return DriveClient(credentials)


# ============ Link helpers ============

def extract_folder_id(drive_link: str) -> Optional[str]:
    """Pull the folder id out of a Drive folder URL, an ?id= URL, or a bare id."""
    if not drive_link:
        return None
    drive_link = drive_link.strip()
    for pattern in _FOLDER_LINK_PATTERNS:
        match = pattern.search(drive_link)
        if match:
            return match.group(1)
    return None


def folder_url(folder_id: str) -> str:
    return f"https://drive.google.com/drive/folders/{folder_id}"


def file_view_url(file_id: str) -> str:
    return f"https://drive.google.com/file/d/{file_id}/view"


def file_download_url(file_id: str) -> str:
    return f"https://drive.google.com/uc?export=download&id={file_id}"


def qr_code_url(folder_id: str) -> str:
    return "https://api.qrserver.com/v1/create-qr-code/?size=200x200&data=" + quote(folder_url(folder_id), safe="")

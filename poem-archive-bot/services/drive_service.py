#!/usr/bin/env python3
"""
Google Drive service for the poem archive.

One folder per notebook under the configured root; transcripts and original
photos are stored side by side and shared read-only with anyone holding the link.
"""
import json
import uuid
from typing import Dict, List, Optional

import httpx

from config.settings import DRIVE_API_BASE, DRIVE_UPLOAD_BASE, HTTP_TIMEOUT_SECONDS
from utils.text_utils import notebook_label

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


class DriveApiError(Exception):
    """Non-success response from the Drive API."""

    def __init__(self, operation: str, status_code: int, message: str):
        self.operation = operation
        self.status_code = status_code
        self.message = message
        super().__init__(f"Drive {operation} failed ({status_code}): {message}")


def escape_query_value(value: str) -> str:
    """Escape a literal for use inside single quotes in a Drive query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveService:
    """Service for Drive v3 file operations."""

    def __init__(
        self,
        access_token: str,
        api_base: str = DRIVE_API_BASE,
        upload_base: str = DRIVE_UPLOAD_BASE,
        client: Optional[httpx.Client] = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.upload_base = upload_base.rstrip("/")
        self.client = client or httpx.Client(timeout=HTTP_TIMEOUT_SECONDS)
        self.headers = {"Authorization": f"Bearer {access_token}"}

    def _check(self, operation: str, response: httpx.Response) -> httpx.Response:
        if response.is_success:
            return response
        try:
            message = response.json().get("error", {}).get("message", response.text)
        except ValueError:
            message = response.text
        raise DriveApiError(operation, response.status_code, message)

    def list_files(self, query: str, fields: str = "files(id, name, parents, mimeType)", page_size: int = 100) -> List[Dict]:
        response = self.client.get(
            f"{self.api_base}/files",
            params={"q": query, "fields": fields, "pageSize": page_size},
            headers=self.headers,
        )
        return self._check("files.list", response).json().get("files", [])

    def find_folder(self, name: str, parent_id: str) -> Optional[str]:
        query = (
            f"name = '{escape_query_value(name)}' and '{escape_query_value(parent_id)}' in parents "
            f"and mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
        )
        files = self.list_files(query, fields="files(id, name)")
        return files[0]["id"] if files else None

    def create_folder(self, name: str, parent_id: str) -> str:
        response = self.client.post(
            f"{self.api_base}/files",
            params={"fields": "id"},
            json={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
            headers=self.headers,
        )
        return self._check("files.create", response).json()["id"]

    def find_or_create_folder(self, name: str, parent_id: str) -> str:
        """Idempotent for sequential callers; not atomic under concurrency."""
        folder_id = self.find_folder(name, parent_id)
        if folder_id:
            return folder_id
        return self.create_folder(name, parent_id)

    def create_object(self, folder_id: str, name: str, data: bytes, mime_type: str) -> str:
        """Multipart upload of a new file. Names are not checked for collisions."""
        boundary = f"poem-archive-{uuid.uuid4().hex}"
        metadata = json.dumps({"name": name, "parents": [folder_id], "mimeType": mime_type})
        body = b"".join([
            f"--{boundary}\r\n".encode(),
            b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
            metadata.encode("utf-8"),
            f"\r\n--{boundary}\r\n".encode(),
            f"Content-Type: {mime_type}\r\n\r\n".encode(),
            data,
            f"\r\n--{boundary}--\r\n".encode(),
        ])
        response = self.client.post(
            f"{self.upload_base}/files",
            params={"uploadType": "multipart", "fields": "id"},
            content=body,
            headers={**self.headers, "Content-Type": f"multipart/related; boundary={boundary}"},
        )
        return self._check("files.create", response).json()["id"]

    def make_public(self, object_id: str):
        """Anyone with the link can read. Does not undo the upload on failure."""
        response = self.client.post(
            f"{self.api_base}/files/{object_id}/permissions",
            json={"role": "reader", "type": "anyone"},
            headers=self.headers,
        )
        self._check("permissions.create", response)

    def get_metadata(self, object_id: str, fields: str = "id, name, parents") -> Dict:
        response = self.client.get(f"{self.api_base}/files/{object_id}", params={"fields": fields}, headers=self.headers)
        return self._check("files.get", response).json()

    def download(self, object_id: str) -> bytes:
        response = self.client.get(f"{self.api_base}/files/{object_id}", params={"alt": "media"}, headers=self.headers)
        return self._check("files.get", response).content

    def delete(self, object_id: str):
        response = self.client.delete(f"{self.api_base}/files/{object_id}", headers=self.headers)
        self._check("files.delete", response)

    def close(self):
        self.client.close()


def notebook_folder_name(notebook: str) -> str:
    return notebook_label(notebook)


def resolve_notebook_folder(drive: DriveService, notebook: str, root_folder_id: str) -> str:
    """Folder id for the notebook, created on first use."""
    return drive.find_or_create_folder(notebook_folder_name(notebook), root_folder_id)


def get_drive_service(access_token: str) -> DriveService:
    """Get Drive service instance."""
    return DriveService(access_token)

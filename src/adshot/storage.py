"""Storage backends for screenshots and archived HTML.

Both backends address files by ``folder_id`` + ``file_name`` and hand back a
stable identifier (``<folder>/<name>``) plus a link a person can open.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from google.cloud import storage  # type: ignore[attr-defined]

from .errors import UploadError
from .logging import jlog


@dataclass(frozen=True, slots=True)
class StoredFile:
    id: str
    web_view_link: Optional[str] = None


class Storage(Protocol):
    def upload_buffer(
        self,
        folder_id: str,
        file_name: str,
        data: bytes,
        mime_type: str,
        metadata: Mapping[str, str] | None = None,
    ) -> StoredFile: ...

    def find_by_name(self, folder_id: str, file_name: str) -> StoredFile | None: ...

    def get_content(self, file_id: str) -> bytes: ...


def object_key(folder_id: str, file_name: str) -> str:
    folder = folder_id.strip("/")
    if not folder or not file_name or "/" in file_name or file_name in (".", ".."):
        raise ValueError(f"invalid storage location: {folder_id!r}/{file_name!r}")
    if any(part in ("", ".", "..") for part in folder.split("/")):
        raise ValueError(f"invalid storage folder: {folder_id!r}")
    return f"{folder}/{file_name}"


class GcsStorage:
    """Google Cloud Storage backend; folders are key prefixes in one bucket."""

    def __init__(
        self,
        storage_client: storage.Client,
        bucket_name: str,
        *,
        prefix: str = "",
        dry_run: bool = False,
    ) -> None:
        self.client = storage_client
        self.bucket_name = bucket_name
        self.prefix = prefix.strip("/")
        self.dry_run = dry_run

    def _blob_name(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    def _link(self, key: str) -> str:
        return f"https://storage.cloud.google.com/{self.bucket_name}/{self._blob_name(key)}"

    def upload_buffer(
        self,
        folder_id: str,
        file_name: str,
        data: bytes,
        mime_type: str,
        metadata: Mapping[str, str] | None = None,
    ) -> StoredFile:
        key = object_key(folder_id, file_name)
        if self.dry_run:
            jlog("info", event="dry_run_upload", path=f"gs://{self.bucket_name}/{self._blob_name(key)}")
            return StoredFile(id=key, web_view_link=self._link(key))
        try:
            blob = self.client.bucket(self.bucket_name).blob(self._blob_name(key))
            if mime_type.startswith("image/"):
                blob.cache_control = "public, max-age=31536000, immutable"
            blob.metadata = dict(metadata or {})
            blob.upload_from_string(data, content_type=mime_type)
        except Exception as exc:
            raise UploadError(f"upload of {key} to gs://{self.bucket_name} failed: {exc}") from exc
        return StoredFile(id=key, web_view_link=self._link(key))

    def find_by_name(self, folder_id: str, file_name: str) -> StoredFile | None:
        key = object_key(folder_id, file_name)
        blob = self.client.bucket(self.bucket_name).blob(self._blob_name(key))
        if not blob.exists():
            return None
        return StoredFile(id=key, web_view_link=self._link(key))

    def get_content(self, file_id: str) -> bytes:
        blob = self.client.bucket(self.bucket_name).blob(self._blob_name(file_id))
        return blob.download_as_bytes()


class LocalStorage:
    """Filesystem backend rooted at ``base_dir``; folders are subdirectories."""

    def __init__(self, base_dir: str | Path, *, dry_run: bool = False) -> None:
        self.base_dir = Path(base_dir)
        self.dry_run = dry_run

    def _path(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise ValueError(f"storage key escapes base directory: {key!r}")
        return path

    def upload_buffer(
        self,
        folder_id: str,
        file_name: str,
        data: bytes,
        mime_type: str,
        metadata: Mapping[str, str] | None = None,
    ) -> StoredFile:
        key = object_key(folder_id, file_name)
        path = self._path(key)
        if self.dry_run:
            jlog("info", event="dry_run_upload", path=str(path))
            return StoredFile(id=key, web_view_link=path.as_uri())
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise UploadError(f"write of {key} under {self.base_dir} failed: {exc}") from exc
        return StoredFile(id=key, web_view_link=path.as_uri())

    def find_by_name(self, folder_id: str, file_name: str) -> StoredFile | None:
        key = object_key(folder_id, file_name)
        path = self._path(key)
        if not path.is_file():
            return None
        return StoredFile(id=key, web_view_link=path.as_uri())

    def get_content(self, file_id: str) -> bytes:
        return self._path(file_id).read_bytes()


__all__ = ["GcsStorage", "LocalStorage", "Storage", "StoredFile", "object_key"]

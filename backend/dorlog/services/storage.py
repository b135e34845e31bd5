"""
Report file storage.

Generated reports are written once and then opened from a link, so all we
need is "save these bytes under this name, give me a URL". Two backends:

- LocalStorageService: files under REPORTS_DIR, served by GET /reports/{name}.
  Used in development and tests.
- FirebaseStorageService: uploads to reports/{name} in the Firebase
  Storage bucket and returns the public URL.

get_storage_service() picks one from settings.REPORT_STORAGE.

Usage:
    storage = get_storage_service()
    stored = await storage.save_report(html.encode(), "report_abc.html", "text/html; charset=utf-8")
    print(stored.url)
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from dorlog.config import settings

logger = logging.getLogger(__name__)

REPORT_CACHE_CONTROL = "public, max-age=604800"  # 7 days


@dataclass
class StoredReport:
    file_name: str
    url: str
    size_bytes: int


class LocalStorageService:
    """Saves report files to a local directory."""

    def __init__(self, base_path: str | None = None, public_base_url: str | None = None):
        self.base_path = Path(base_path or settings.REPORTS_DIR)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (public_base_url or settings.PUBLIC_BASE_URL).rstrip("/")

    async def save_report(self, content: bytes, file_name: str, content_type: str) -> StoredReport:
        """Write the report and return where it can be fetched from."""
        file_path = self.path_for(file_name)
        await asyncio.to_thread(file_path.write_bytes, content)
        logger.info("Stored report %s (%d bytes, %s)", file_name, len(content), content_type)
        return StoredReport(
            file_name=file_name,
            url=f"{self.public_base_url}/reports/{file_name}",
            size_bytes=len(content),
        )

    def path_for(self, file_name: str) -> Path:
        """Resolve a report name to a path inside base_path.

        Raises:
            ValueError: If the name would escape the reports directory.
        """
        if not file_name or Path(file_name).name != file_name:
            raise ValueError(f"Invalid report file name: {file_name!r}")
        return self.base_path / file_name

    async def file_exists(self, file_name: str) -> bool:
        try:
            return self.path_for(file_name).is_file()
        except ValueError:
            return False


class FirebaseStorageService:
    """Uploads report files to the Firebase Storage bucket."""

    def __init__(self, bucket_name: str | None = None):
        from firebase_admin import storage

        self.bucket = storage.bucket(bucket_name or settings.FIREBASE_STORAGE_BUCKET or None)

    async def save_report(self, content: bytes, file_name: str, content_type: str) -> StoredReport:
        blob = self.bucket.blob(f"reports/{file_name}")
        blob.cache_control = REPORT_CACHE_CONTROL
        blob.metadata = {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "generator": "dorlog-reports",
        }

        def _upload():
            blob.upload_from_string(content, content_type=content_type)
            blob.make_public()
            return blob.public_url

        url = await asyncio.to_thread(_upload)
        logger.info("Uploaded report %s to bucket %s", file_name, self.bucket.name)
        return StoredReport(file_name=file_name, url=url, size_bytes=len(content))


def get_storage_service():
    """Factory: the storage backend configured by REPORT_STORAGE."""
    if settings.REPORT_STORAGE == "firebase":
        return FirebaseStorageService()
    return LocalStorageService()

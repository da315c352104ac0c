"""
services/blob_service.py — Receipt uploads on local disk.

upload() stores the bytes under `<root>/receipts/<ms timestamp>_<name>` and
returns the URL the app serves them from (GET /api/v1/uploads/<key>).
Only images and PDFs are accepted.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from werkzeug.utils import secure_filename

from backend.app.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
}


class LocalBlobStore:

    def __init__(
            self,
            root: str,
            base_url: str = "/api/v1/uploads",
            max_bytes: int = 10 * 1024 * 1024,
    ) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes

    def upload(self, filename: str, content_type: str, data: bytes) -> str:
        """
        Raises:
            AppError(UNSUPPORTED_FILE_TYPE, 400)
            AppError(FILE_TOO_LARGE, 413)
        """
        content_type = (content_type or "").split(";")[0].strip().lower()
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise AppError(
                ErrorCode.UNSUPPORTED_FILE_TYPE,
                "Receipts must be JPEG, PNG, WebP or PDF files.",
                400,
                field="file",
            )
        if len(data) > self.max_bytes:
            raise AppError(
                ErrorCode.FILE_TOO_LARGE,
                f"Receipts may be at most {self.max_bytes} bytes.",
                413,
                field="file",
            )

        name = secure_filename(filename or "") or f"receipt{ALLOWED_CONTENT_TYPES[content_type]}"
        key = f"receipts/{int(time.time() * 1000)}_{name}"

        path = self.root / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Stored receipt %s (%d bytes)", key, len(data))

        return f"{self.base_url}/{key}"

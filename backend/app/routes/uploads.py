"""
routes/uploads.py — Receipt upload and download (url_prefix=/api/v1/uploads).

  POST /uploads/receipts  multipart field "file" -> 201 {"url": ...}
  GET  /uploads/<key>     serves a stored file
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from backend.app.errors import AppError, ErrorCode
from backend.app.extensions import get_blob_store
from backend.app.middleware.auth_middleware import require_auth

uploads_bp = Blueprint("uploads", __name__)


@uploads_bp.route("/receipts", methods=["POST"])
@require_auth
def upload_receipt():
    file = request.files.get("file")
    if file is None:
        raise AppError(
            ErrorCode.MISSING_FIELD,
            "Attach the receipt as multipart field 'file'.",
            400,
            field="file",
        )

    url = get_blob_store().upload(
        filename=file.filename,
        content_type=file.mimetype,
        data=file.read(),
    )
    return jsonify({"data": {"url": url}, "warnings": []}), 201


@uploads_bp.route("/<path:key>", methods=["GET"])
def download(key: str):
    # send_from_directory refuses paths that escape the upload folder.
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], key)

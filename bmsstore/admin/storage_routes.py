from flask import current_app, jsonify, request

from bmsstore.api.utils.http import json_error
from bmsstore.api.utils.storage import StorageError, delete_object, public_url, save_upload

from . import admin_bp


@admin_bp.post("/storage/<bucket>")
def upload_object(bucket: str):
    try:
        path = save_upload(bucket, request.files.get("file"))
    except StorageError as e:
        return json_error(e.message, e.status)
    current_app.logger.info("Stored %s/%s", bucket, path)
    return jsonify({"ok": True, "bucket": bucket, "path": path, "public_url": public_url(bucket, path)}), 201


@admin_bp.delete("/storage/<bucket>/<path:path>")
def delete_stored_object(bucket: str, path: str):
    try:
        removed = delete_object(bucket, path)
    except StorageError as e:
        return json_error(e.message, e.status)
    if not removed:
        return json_error("File not found", 404)
    return jsonify({"ok": True}), 200

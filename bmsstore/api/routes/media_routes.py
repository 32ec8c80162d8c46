# bmsstore/api/routes/media_routes.py
# Public read side of the storage buckets; uploads live in the admin blueprint
import os

from flask import Blueprint, abort, send_from_directory

from bmsstore.api.utils.storage import BUCKETS, bucket_dir

api_media = Blueprint("api_media", __name__, url_prefix="/storage")


@api_media.get("/<bucket>/<path:path>")
def serve_object(bucket: str, path: str):
    if bucket not in BUCKETS:
        abort(404)
    return send_from_directory(bucket_dir(bucket), os.path.basename(path), max_age=7 * 24 * 3600)

import os
import uuid

from flask import current_app, url_for
from PIL import Image, ImageOps, UnidentifiedImageError
from werkzeug.utils import secure_filename

BUCKETS = ("categories", "product-images", "product-videos")
VIDEO_BUCKETS = {"product-videos"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".mkv", ".webm", ".m4v"}


class StorageError(Exception):
    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


# ========================= Helpers =========================

def _detect_media_type(filename: str, mimetype: str | None) -> str:
    """'video' or 'image'."""
    mt = (mimetype or "").lower()
    if mt.startswith("video/"):
        return "video"
    if mt.startswith("image/"):
        return "image"
    ext = os.path.splitext(filename or "")[1].lower()
    if ext in VIDEO_EXTENSIONS:
        return "video"
    return "image"


def _check_bucket(bucket: str) -> str:
    if bucket not in BUCKETS:
        raise StorageError(f"Unknown bucket '{bucket}'", 404)
    return bucket


def bucket_dir(bucket: str) -> str:
    d = os.path.join(current_app.config["STORAGE_ROOT"], _check_bucket(bucket))
    os.makedirs(d, exist_ok=True)
    return d


def _safe_uuid_name(ext: str = ".webp") -> str:
    return f"{uuid.uuid4().hex}{ext.lower()}"


def _save_raw(fs, bucket: str) -> str:
    """Store the upload unchanged under a uuid name, keeping its extension."""
    ext = os.path.splitext(secure_filename(fs.filename or ""))[1] or ".bin"
    out_name = _safe_uuid_name(ext)
    fs.save(os.path.join(bucket_dir(bucket), out_name))
    return out_name


def _process_and_save_image(fs, bucket: str) -> str:
    """
    Image normalisation:
    - EXIF orientation
    - RGB
    - max 1600x1600
    - WebP (quality 85)
    Returns the stored file name.
    """
    try:
        img = Image.open(fs.stream if hasattr(fs, "stream") else fs)
        img = ImageOps.exif_transpose(img)
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA" if "A" in img.getbands() else "RGB")
        img.thumbnail((1600, 1600), Image.Resampling.LANCZOS)

        # flatten transparency on white so product shots don't end up see-through
        if img.mode == "RGBA":
            bg = Image.new("RGB", img.size, (255, 255, 255))
            bg.paste(img, mask=img.split()[-1])
            img = bg
    except (UnidentifiedImageError, OSError) as e:
        raise StorageError(f"Not a valid image: {e}") from e

    out_name = _safe_uuid_name(".webp")
    img.save(os.path.join(bucket_dir(bucket), out_name), format="WEBP", quality=85, method=6)
    return out_name


# ========================= Public API =========================

def save_upload(bucket: str, fs) -> str:
    """Store an uploaded FileStorage in a bucket and return its path inside the bucket."""
    _check_bucket(bucket)
    if fs is None or not (fs.filename or "").strip():
        raise StorageError("Missing file")

    kind = _detect_media_type(fs.filename, getattr(fs, "mimetype", None))
    if bucket in VIDEO_BUCKETS:
        if kind != "video":
            raise StorageError("Only video files can be uploaded to this bucket")
        return _save_raw(fs, bucket)

    if kind != "image":
        raise StorageError("Only image files can be uploaded to this bucket")
    return _process_and_save_image(fs, bucket)


def public_url(bucket: str, path: str) -> str:
    return url_for("api_media.serve_object", bucket=bucket, path=path, _external=False)


def object_path(bucket: str, path: str) -> str:
    name = secure_filename(os.path.basename(path or ""))
    if not name:
        raise StorageError("Invalid path")
    return os.path.join(bucket_dir(bucket), name)


def delete_object(bucket: str, path: str) -> bool:
    full = object_path(bucket, path)
    if not os.path.exists(full):
        return False
    os.remove(full)
    return True

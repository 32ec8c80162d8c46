"""
Storage buckets: image normalisation to WebP, bucket type checks and
the public read route.
"""
import io
import os

from PIL import Image


def _png(size=(2400, 1200), mode="RGBA"):
    buf = io.BytesIO()
    Image.new(mode, size, (200, 30, 60, 128) if mode == "RGBA" else (200, 30, 60)).save(buf, format="PNG")
    buf.seek(0)
    return buf


def test_image_upload_becomes_webp(admin_client, app):
    resp = admin_client.post(
        "/admin/api/storage/product-images",
        data={"file": (_png(), "look.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["path"].endswith(".webp")
    assert body["public_url"] == f"/storage/product-images/{body['path']}"

    stored = os.path.join(app.config["STORAGE_ROOT"], "product-images", body["path"])
    with Image.open(stored) as img:
        assert img.format == "WEBP"
        assert max(img.size) == 1600
        assert img.mode == "RGB"

    served = admin_client.get(body["public_url"])
    assert served.status_code == 200


def test_video_bucket_rejects_images(admin_client):
    resp = admin_client.post(
        "/admin/api/storage/product-videos",
        data={"file": (_png(mode="RGB"), "still.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400


def test_video_upload_is_stored_as_is(admin_client, app):
    resp = admin_client.post(
        "/admin/api/storage/product-videos",
        data={"file": (io.BytesIO(b"\x00\x00\x00\x18ftypmp42"), "clip.mp4", "video/mp4")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    path = resp.get_json()["path"]
    assert path.endswith(".mp4")

    assert admin_client.delete(f"/admin/api/storage/product-videos/{path}").status_code == 200
    assert admin_client.delete(f"/admin/api/storage/product-videos/{path}").status_code == 404


def test_broken_image_and_unknown_bucket(admin_client):
    broken = admin_client.post(
        "/admin/api/storage/categories",
        data={"file": (io.BytesIO(b"not an image"), "x.jpg", "image/jpeg")},
        content_type="multipart/form-data",
    )
    assert broken.status_code == 400

    unknown = admin_client.post(
        "/admin/api/storage/secrets",
        data={"file": (_png(mode="RGB"), "x.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert unknown.status_code == 404


def test_uploads_need_admin(client):
    resp = client.post(
        "/admin/api/storage/categories",
        data={"file": (_png(mode="RGB"), "x.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 401


def test_product_media_upload(admin_client, catalog):
    resp = admin_client.post(
        f"/admin/api/products/{catalog['kurti']}/media",
        data={"file": (_png(mode="RGB", size=(300, 300)), "kurti.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["kind"] == "image"
    assert body["media"]["url"].startswith("/storage/product-images/")

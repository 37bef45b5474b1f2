import base64
import io
import json

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from spriteslice.core import SliceMode
from spriteslice.core.color_model import color_key_settings
from spriteslice.web.server import SliceRequest, create_app


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


def _png_bytes() -> bytes:
    image = Image.new("RGBA", (32, 16), (255, 0, 255, 255))
    for x in range(2, 6):
        for y in range(3, 8):
            image.putpixel((x, y), (0, 0, 255, 255))
    handle = io.BytesIO()
    image.save(handle, format="PNG")
    return handle.getvalue()


def test_slice_request_parses_colors_and_clamps_feather():
    req = SliceRequest.model_validate(
        {
            "mode": "islands",
            "processing": {
                "color_key_enabled": True,
                "color_key_colors": "#ff00ff, 00ff00,",
                "color_key_feather": 80,
            },
        }
    )
    assert req.mode is SliceMode.ISLANDS
    assert req.processing.color_key_colors == ["#ff00ff", "00ff00"]
    assert req.processing.color_key_feather == 50
    settings = req.to_settings()
    assert color_key_settings(settings.processing).feather == 50


def test_health(client: TestClient):
    assert client.get("/health").json() == {"status": "ok"}


def test_grid_rects_endpoint(client: TestClient):
    response = client.post("/api/grid-rects", json={"image_width": 64, "image_height": 32, "grid": {"width": 32, "height": 32}})
    assert response.status_code == 200
    assert response.json()["rects"] == [
        {"id": "grid-0", "x": 0, "y": 0, "w": 32, "h": 32},
        {"id": "grid-1", "x": 32, "y": 0, "w": 32, "h": 32},
    ]


def test_islands_endpoint_applies_color_key(client: TestClient):
    settings = {
        "islands": {"min_width": 1, "min_height": 1},
        "processing": {"color_key_enabled": True, "color_key_colors": ["#ff00ff"]},
    }
    response = client.post(
        "/api/islands",
        files={"image": ("sheet.png", _png_bytes(), "image/png")},
        data={"settings": json.dumps(settings)},
    )
    assert response.status_code == 200
    body = response.json()
    assert (body["width"], body["height"]) == (32, 16)
    assert body["rects"] == [{"id": "island-0", "x": 2, "y": 3, "w": 4, "h": 5}]


def test_extract_endpoint_returns_manifest_and_pngs(client: TestClient):
    settings = {
        "grid": {"width": 16, "height": 16},
        "processing": {"auto_trim": True, "color_key_enabled": True, "color_key_colors": ["#ff00ff"]},
        "prefix": "walk",
        "manual_rects": [{"x": 0, "y": 0, "w": 8, "h": 8}],
    }
    response = client.post(
        "/api/extract",
        files={"image": ("sheet.png", _png_bytes(), "image/png")},
        data={"settings": json.dumps(settings)},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["frame_count"] == 2
    first, manual = body["frames"]
    assert first["id"] == "grid-0"
    assert first["filename"] == "walk_000.png"
    assert manual["id"].startswith("manual-")

    entry = body["manifest"]["frames"][0]
    assert entry["spriteSourceSize"] == {"x": 2, "y": 3, "w": 4, "h": 5}
    with Image.open(io.BytesIO(base64.b64decode(first["png_base64"]))) as frame:
        assert frame.size == (4, 5)


def test_extract_rejects_non_manual_rect_input(client: TestClient):
    settings = {"manual_rects": [{"id": "grid-3", "x": 0, "y": 0, "w": 4, "h": 4}]}
    response = client.post(
        "/api/extract",
        files={"image": ("sheet.png", _png_bytes(), "image/png")},
        data={"settings": json.dumps(settings)},
    )
    assert response.status_code == 400


def test_extract_rejects_bad_settings_and_images(client: TestClient):
    bad_json = client.post(
        "/api/extract",
        files={"image": ("sheet.png", _png_bytes(), "image/png")},
        data={"settings": "{not json"},
    )
    assert bad_json.status_code == 400

    invalid = client.post(
        "/api/extract",
        files={"image": ("sheet.png", _png_bytes(), "image/png")},
        data={"settings": json.dumps({"islands": {"min_width": 0}})},
    )
    assert invalid.status_code == 422

    garbage = client.post(
        "/api/extract",
        files={"image": ("sheet.png", b"nope", "image/png")},
        data={"settings": "{}"},
    )
    assert garbage.status_code == 400

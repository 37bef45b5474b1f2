"""FastAPI surface for sprite-sheet slicing."""

from __future__ import annotations

import base64
import json
import logging
import os
from typing import Any, Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator
from starlette.concurrency import run_in_threadpool

from ..core import (
    ExportSettings,
    GridSettings,
    IslandSettings,
    PixelBuffer,
    ProcessingSettings,
    Rect,
    RectSource,
    Size,
    SliceMode,
    SliceSettings,
)
from ..core import frame_extractor, image_io, manifest_writer
from ..core.errors import InvalidImageError, ProcessingError, ValidationError
from ..core.grid import calculate_grid_rects
from ..core.session import SliceSession
from ..utils import validators

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = int(os.environ.get("SPRITESLICE_MAX_UPLOAD_MB", "50")) * 1024 * 1024
EXTRACT_WORKERS = validators.parse_optional_int(os.environ.get("SPRITESLICE_WORKERS"), "SPRITESLICE_WORKERS") or 1
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("SPRITESLICE_ALLOWED_ORIGINS", "http://localhost:8000").split(",")
    if origin.strip()
]


class GridModel(BaseModel):
    width: int = 32
    height: int = 32
    margin_x: int = Field(0, ge=0)
    margin_y: int = Field(0, ge=0)
    spacing_x: int = Field(0, ge=0)
    spacing_y: int = Field(0, ge=0)

    def to_settings(self) -> GridSettings:
        return GridSettings(**self.model_dump())


class IslandModel(BaseModel):
    min_width: int = Field(5, ge=1)
    min_height: int = Field(5, ge=1)


class ProcessingModel(BaseModel):
    auto_trim: bool = False
    color_key_enabled: bool = False
    color_key_colors: list[str] = Field(default_factory=lambda: ["#ff00ff"])
    color_key_tolerance: float = Field(10, ge=0, le=validators.MAX_TOLERANCE)
    color_key_feather: float = Field(0, ge=0)

    @field_validator("color_key_colors", mode="before")
    @classmethod
    def _split_colors(cls, value):
        if value in (None, "", "null"):
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(item).strip() for item in value if str(item).strip()]

    @field_validator("color_key_feather")
    @classmethod
    def _clamp_feather(cls, value):
        return min(value, validators.MAX_FEATHER)


class RectModel(BaseModel):
    id: Optional[str] = None
    x: int
    y: int
    w: int = Field(..., ge=1)
    h: int = Field(..., ge=1)

    def to_rect(self) -> Rect:
        if self.id is None:
            return Rect.manual(self.x, self.y, self.w, self.h)
        return Rect.from_id(self.id, self.x, self.y, self.w, self.h)


class SliceRequest(BaseModel):
    """Incoming settings payload for slicing."""

    mode: SliceMode = SliceMode.GRID
    grid: GridModel = Field(default_factory=GridModel)
    islands: IslandModel = Field(default_factory=IslandModel)
    processing: ProcessingModel = Field(default_factory=ProcessingModel)
    prefix: str = Field("sprite", min_length=1, max_length=64)
    manual_rects: list[RectModel] = Field(default_factory=list)
    hidden_ids: list[str] = Field(default_factory=list)

    def to_settings(self) -> SliceSettings:
        return SliceSettings(
            mode=self.mode,
            grid=self.grid.to_settings(),
            islands=IslandSettings(**self.islands.model_dump()),
            processing=ProcessingSettings(**self.processing.model_dump()),
            export=ExportSettings(prefix=self.prefix),
        )


class GridRectsRequest(BaseModel):
    image_width: int = Field(..., ge=1)
    image_height: int = Field(..., ge=1)
    grid: GridModel = Field(default_factory=GridModel)


def create_app() -> FastAPI:
    app = FastAPI(title="SpriteSlice", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/grid-rects")
    async def grid_rects(payload: GridRectsRequest) -> dict[str, Any]:
        try:
            rects = calculate_grid_rects(payload.image_width, payload.image_height, payload.grid.to_settings())
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"rects": [rect.to_dict() for rect in rects]}

    @app.post("/api/islands")
    async def islands(
        request: Request,
        image: UploadFile = File(...),
        settings: str = Form("{}"),
    ) -> dict[str, Any]:
        slice_request = _parse_settings(settings)
        buffer = await _decode_upload(request, image)
        try:
            rects = await run_in_threadpool(_run_island_detection, buffer, slice_request.to_settings())
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {
            "width": buffer.width,
            "height": buffer.height,
            "rects": [rect.to_dict() for rect in rects],
        }

    @app.post("/api/extract")
    async def extract(
        request: Request,
        image: UploadFile = File(...),
        settings: str = Form("{}"),
    ) -> dict[str, Any]:
        slice_request = _parse_settings(settings)
        buffer = await _decode_upload(request, image)
        try:
            return await run_in_threadpool(_run_extraction, buffer, slice_request)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ProcessingError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        except Exception as exc:  # pragma: no cover
            logger.exception("Unexpected failure during extraction")
            raise HTTPException(status_code=500, detail="Unexpected error") from exc

    return app


def _parse_settings(raw: str) -> SliceRequest:
    try:
        payload = json.loads(raw) if raw else {}
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid settings JSON: {exc}") from exc
    try:
        return SliceRequest.model_validate(payload)
    except PydanticValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


async def _decode_upload(request: Request, upload: UploadFile) -> PixelBuffer:
    _enforce_size_limit(request)
    data = _read_upload(upload)
    try:
        return await run_in_threadpool(image_io.decode_image, data, upload.filename or "<upload>")
    except InvalidImageError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _read_upload(upload: UploadFile) -> bytes:
    chunks = []
    read = 0
    while True:
        chunk = upload.file.read(1024 * 1024)
        if not chunk:
            break
        read += len(chunk)
        if read > MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=413, detail="File too large")
        chunks.append(chunk)
    return b"".join(chunks)


def _enforce_size_limit(request: Request) -> None:
    """Simple guardrail on upload size based on Content-Length."""

    content_length = request.headers.get("content-length")
    if not content_length:
        return
    try:
        size = int(content_length)
    except ValueError:
        return
    if size > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Upload exceeds limit")


def _run_island_detection(buffer: PixelBuffer, settings: SliceSettings) -> list[Rect]:
    session = SliceSession(settings)
    session.load_image(buffer)
    return session.island_rects()


def _build_session(buffer: PixelBuffer, request: SliceRequest) -> SliceSession:
    session = SliceSession(request.to_settings())
    session.load_image(buffer)
    for rect_model in request.manual_rects:
        rect = rect_model.to_rect()
        if rect.source is not RectSource.MANUAL:
            raise ValidationError(f"Manual rects must use the manual- prefix, got {rect.id}")
        session.add_rect(rect)
    session.delete_frames(request.hidden_ids)
    return session


def _run_extraction(buffer: PixelBuffer, request: SliceRequest) -> dict[str, Any]:
    """Run the full pipeline for one upload and inline the frame PNGs."""

    session = _build_session(buffer, request)
    settings = session.settings
    frames = frame_extractor.extract_frames(
        buffer, session.collect_rects(), settings.processing, workers=EXTRACT_WORKERS
    )
    manifest = manifest_writer.build_manifest(frames, Size(buffer.width, buffer.height), settings.export.prefix)
    payload_frames = []
    for entry, frame in zip(manifest["frames"], frames):
        payload_frames.append(
            {
                "id": frame.id,
                "filename": entry["filename"],
                "png_base64": base64.b64encode(image_io.encode_png(frame.pixels)).decode("ascii"),
            }
        )
    return {"frame_count": len(frames), "manifest": manifest, "frames": payload_frames}


app = create_app()


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("spriteslice.web.server:app", host="0.0.0.0", port=8000, reload=True)

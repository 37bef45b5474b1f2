"""Core data contracts for sprite-sheet slicing."""

__all__ = [
    "PixelBuffer",
    "RectSource",
    "Rect",
    "Bounds",
    "Offset",
    "Size",
    "ColorRGB",
    "ColorKeySettings",
    "Frame",
    "SliceMode",
    "GridSettings",
    "IslandSettings",
    "ProcessingSettings",
    "ExportSettings",
    "SliceSettings",
]

import uuid
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .errors import ValidationError


@dataclass
class PixelBuffer:
    """RGBA pixels stored as a ``(height, width, 4)`` uint8 array, origin top-left."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        if not isinstance(self.pixels, np.ndarray):
            raise ValidationError("PixelBuffer requires a numpy array")
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValidationError(f"PixelBuffer expects shape (height, width, 4), got {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            raise ValidationError(f"PixelBuffer expects uint8 pixels, got {self.pixels.dtype}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def alpha(self) -> np.ndarray:
        """View of the alpha channel; writes go through to the buffer."""

        return self.pixels[:, :, 3]

    @classmethod
    def blank(cls, width: int, height: int) -> "PixelBuffer":
        """Create a fully transparent buffer."""

        return cls(np.zeros((max(0, height), max(0, width), 4), dtype=np.uint8))

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes) -> "PixelBuffer":
        """Build a buffer from interleaved RGBA bytes in row-major order."""

        expected = width * height * 4
        if len(data) != expected:
            raise ValidationError(f"Expected {expected} bytes for {width}x{height} RGBA, got {len(data)}")
        array = np.frombuffer(bytes(data), dtype=np.uint8).reshape((height, width, 4)).copy()
        return cls(array)

    def to_bytes(self) -> bytes:
        return np.ascontiguousarray(self.pixels).tobytes()

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.pixels.copy())

    def crop(self, x: int, y: int, width: int, height: int) -> "PixelBuffer":
        """Copy a region 1:1 into a fresh buffer; pixels outside the source stay transparent."""

        result = PixelBuffer.blank(width, height)
        src_x0 = max(0, x)
        src_y0 = max(0, y)
        src_x1 = min(self.width, x + width)
        src_y1 = min(self.height, y + height)
        if src_x1 > src_x0 and src_y1 > src_y0:
            result.pixels[src_y0 - y : src_y1 - y, src_x0 - x : src_x1 - x] = self.pixels[
                src_y0:src_y1, src_x0:src_x1
            ]
        return result


class RectSource(str, Enum):
    """Where a rectangle came from; the value doubles as its id prefix."""

    GRID = "grid"
    ISLAND = "island"
    MANUAL = "manual"

    @property
    def editable(self) -> bool:
        """Grid cells follow the grid settings; only island and manual rects can be moved or resized."""

        return self is not RectSource.GRID

    @classmethod
    def parse_id(cls, rect_id: str) -> tuple["RectSource", str]:
        """Split an external ``<source>-<key>`` id into its source and key."""

        prefix, sep, key = str(rect_id).partition("-")
        if not sep or not key:
            raise ValidationError(f"Rect id must look like '<source>-<key>': {rect_id!r}")
        try:
            return cls(prefix), key
        except ValueError as exc:
            raise ValidationError(f"Unknown rect source prefix: {prefix!r}") from exc


@dataclass(frozen=True)
class Size:
    w: int
    h: int


@dataclass(frozen=True)
class Offset:
    x: int = 0
    y: int = 0


@dataclass(frozen=True)
class Bounds:
    """Tight opaque bounding box, local to the scanned buffer."""

    x: int
    y: int
    w: int
    h: int


@dataclass(frozen=True)
class Rect:
    """Source rectangle in sheet pixel coordinates."""

    source: RectSource
    key: str
    x: int
    y: int
    w: int
    h: int

    @property
    def id(self) -> str:
        return f"{self.source.value}-{self.key}"

    @property
    def size(self) -> Size:
        return Size(self.w, self.h)

    @classmethod
    def from_id(cls, rect_id: str, x: int, y: int, w: int, h: int) -> "Rect":
        """Parse an external ``<source>-<key>`` id back into a rect."""

        source, key = RectSource.parse_id(rect_id)
        return cls(source=source, key=key, x=int(x), y=int(y), w=int(w), h=int(h))

    @classmethod
    def manual(cls, x: int, y: int, w: int, h: int) -> "Rect":
        return cls(source=RectSource.MANUAL, key=uuid.uuid4().hex, x=x, y=y, w=w, h=h)

    def to_dict(self) -> dict[str, int | str]:
        return {"id": self.id, "x": self.x, "y": self.y, "w": self.w, "h": self.h}


@dataclass(frozen=True)
class ColorRGB:
    r: int
    g: int
    b: int

    def to_hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


@dataclass(frozen=True)
class ColorKeySettings:
    """Key colors applied cumulatively with a shared tolerance and feather band."""

    colors: tuple[ColorRGB, ...]
    tolerance: float = 10
    feather: float = 0


@dataclass
class Frame:
    """A materialized sprite frame; ``id`` always equals the source rect id."""

    id: str
    pixels: PixelBuffer
    source_rect: Rect
    trim_offset: Offset
    trimmed_size: Size
    original_size: Size

    @property
    def trimmed(self) -> bool:
        return self.trimmed_size != self.original_size


class SliceMode(str, Enum):
    GRID = "grid"
    ISLANDS = "islands"
    MANUAL = "manual"


@dataclass
class GridSettings:
    width: int = 32
    height: int = 32
    margin_x: int = 0
    margin_y: int = 0
    spacing_x: int = 0
    spacing_y: int = 0


@dataclass
class IslandSettings:
    min_width: int = 5
    min_height: int = 5


@dataclass
class ProcessingSettings:
    """Per-frame cleanup options."""

    auto_trim: bool = False
    color_key_enabled: bool = False
    color_key_colors: list[str] = field(default_factory=lambda: ["#ff00ff"])
    color_key_tolerance: float = 10
    color_key_feather: float = 0


@dataclass
class ExportSettings:
    prefix: str = "sprite"


@dataclass
class SliceSettings:
    """Complete settings record for a slicing session."""

    mode: SliceMode = SliceMode.GRID
    grid: GridSettings = field(default_factory=GridSettings)
    islands: IslandSettings = field(default_factory=IslandSettings)
    processing: ProcessingSettings = field(default_factory=ProcessingSettings)
    export: ExportSettings = field(default_factory=ExportSettings)

"""Slicing session state: rect sources, hidden rects, island cache and generation passes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional

from . import (
    ColorKeySettings,
    ExportSettings,
    Frame,
    GridSettings,
    IslandSettings,
    PixelBuffer,
    ProcessingSettings,
    Rect,
    RectSource,
    SliceMode,
    SliceSettings,
)
from .color_model import color_key_settings
from .errors import ProcessingError, ValidationError
from .frame_extractor import extract_frame
from .grid import calculate_grid_rects
from .island_detector import detect_islands
from ..utils import validators

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IslandSignature:
    """Everything island detection depends on."""

    image_generation: int
    min_width: int
    min_height: int
    color_key: Optional[ColorKeySettings]


class IslandCache:
    """Detected islands, reused until the signature changes or the cache is invalidated.

    An empty detection result is cached like any other result.
    """

    def __init__(self) -> None:
        self._signature: Optional[IslandSignature] = None
        self._rects: list[Rect] = []

    @property
    def rects(self) -> list[Rect]:
        return list(self._rects)

    def get(self, signature: IslandSignature) -> Optional[list[Rect]]:
        if self._signature is None or self._signature != signature:
            return None
        return list(self._rects)

    def store(self, signature: IslandSignature, rects: list[Rect]) -> None:
        self._signature = signature
        self._rects = list(rects)

    def replace_rect(self, rect: Rect) -> bool:
        for idx, existing in enumerate(self._rects):
            if existing.id == rect.id:
                self._rects[idx] = rect
                return True
        return False

    def invalidate(self) -> None:
        self._signature = None
        self._rects = []


class GenerationPass:
    """One extraction pass; its output is committed only if no newer pass has started."""

    def __init__(self, session: "SliceSession", token: int, rects: list[Rect]):
        self._session = session
        self.token = token
        self.rects = rects
        self._cancelled = False

    @property
    def stale(self) -> bool:
        return self._cancelled or self._session.generation != self.token

    def cancel(self) -> None:
        self._cancelled = True

    def run(self) -> Optional[list[Frame]]:
        """Extract frames for the pass rects; returns None if the pass was abandoned."""

        source = self._session.image
        if source is None:
            raise ProcessingError("No image loaded")
        processing = self._session.settings.processing

        frames: list[Frame] = []
        for rect in self.rects:
            if self.stale:
                logger.info("Discarding stale generation pass %s", self.token)
                return None
            frame = extract_frame(source, rect, processing)
            if frame is not None:
                frames.append(frame)

        if self.stale:
            logger.info("Discarding stale generation pass %s", self.token)
            return None
        self._session._commit(self.token, frames)
        return frames


class SliceSession:
    """Holds the image, settings and rects of a slicing session and regenerates frames."""

    def __init__(self, settings: Optional[SliceSettings] = None) -> None:
        self.settings = settings or SliceSettings()
        self.image: Optional[PixelBuffer] = None
        self.manual_rects: list[Rect] = []
        self.hidden_ids: set[str] = set()
        self.frames: list[Frame] = []
        self.selected_id: Optional[str] = None
        self.islands = IslandCache()
        self.generation = 0
        self._image_generation = 0

    def load_image(self, image: PixelBuffer) -> None:
        """Switch to a new image, dropping all per-image state."""

        self.image = image
        self._image_generation += 1
        self.manual_rects = []
        self.hidden_ids = set()
        self.frames = []
        self.selected_id = None
        self.islands.invalidate()
        logger.info("Loaded %sx%s image", image.width, image.height)

    def update_settings(
        self,
        mode: Optional[SliceMode] = None,
        grid: Optional[GridSettings] = None,
        islands: Optional[IslandSettings] = None,
        processing: Optional[ProcessingSettings] = None,
        export: Optional[ExportSettings] = None,
    ) -> None:
        """Replace settings sections.

        Grid, island or mode changes reset hidden rects, as does a color key
        change in islands mode.
        """

        current = self.settings
        updated = replace(
            current,
            mode=SliceMode(mode) if mode is not None else current.mode,
            grid=grid if grid is not None else current.grid,
            islands=islands if islands is not None else current.islands,
            processing=processing if processing is not None else current.processing,
            export=export if export is not None else current.export,
        )
        validators.validate_grid(updated.grid)
        validators.validate_min_size(updated.islands.min_width, updated.islands.min_height)
        layout_changed = (updated.grid, updated.islands, updated.mode) != (current.grid, current.islands, current.mode)
        # keying can split or merge islands, which renumbers island ids
        key_changed = color_key_settings(updated.processing) != color_key_settings(current.processing)
        if layout_changed or (updated.mode is SliceMode.ISLANDS and key_changed):
            self.hidden_ids = set()
        self.settings = updated

    def add_manual_rect(self, x: int, y: int, w: int, h: int) -> Rect:
        return self.add_rect(Rect.manual(x, y, w, h))

    def add_rect(self, rect: Rect) -> Rect:
        """Append an externally drawn rect; it is considered on top of detected rects."""

        if rect.source is not RectSource.MANUAL:
            raise ValidationError(f"Only manual rects can be added, got {rect.id}")
        validators.validate_rect(rect)
        self.manual_rects.append(rect)
        return rect

    def update_rect(self, rect_id: str, x: int, y: int, w: int, h: int) -> Rect:
        """Move or resize an island or manual rect."""

        updated = validators.validate_rect(Rect.from_id(rect_id, x, y, w, h))
        if not updated.source.editable:
            raise ValidationError(f"{updated.source.value} rects follow the grid settings and cannot be edited")
        if updated.source is RectSource.MANUAL:
            for idx, existing in enumerate(self.manual_rects):
                if existing.id == rect_id:
                    self.manual_rects[idx] = updated
                    return updated
        elif self.islands.replace_rect(updated):
            return updated
        raise ValidationError(f"Unknown rect id: {rect_id}")

    def island_signature(self) -> IslandSignature:
        islands = self.settings.islands
        return IslandSignature(
            image_generation=self._image_generation,
            min_width=islands.min_width,
            min_height=islands.min_height,
            color_key=color_key_settings(self.settings.processing),
        )

    def island_rects(self) -> list[Rect]:
        """Return cached islands, detecting them when the signature changed."""

        if self.image is None:
            return []
        signature = self.island_signature()
        cached = self.islands.get(signature)
        if cached is not None:
            return cached
        detected = detect_islands(
            self.image,
            signature.min_width,
            signature.min_height,
            color_key=signature.color_key,
        )
        self.islands.store(signature, detected)
        logger.info("Detected %s island(s)", len(detected))
        return list(detected)

    def collect_rects(self) -> list[Rect]:
        """Mode rects followed by manual rects, minus hidden ids."""

        if self.image is None:
            return []
        mode = self.settings.mode
        if mode is SliceMode.GRID:
            rects = calculate_grid_rects(self.image.width, self.image.height, self.settings.grid)
        elif mode is SliceMode.ISLANDS:
            rects = self.island_rects()
        else:
            rects = []
        rects = rects + self.manual_rects
        return [rect for rect in rects if rect.id not in self.hidden_ids]

    def begin_pass(self) -> GenerationPass:
        """Start a new pass; any pass started earlier becomes stale."""

        self.generation += 1
        return GenerationPass(self, self.generation, self.collect_rects())

    def generate(self) -> list[Frame]:
        if self.image is None:
            self.frames = []
            return []
        frames = self.begin_pass().run()
        return frames if frames is not None else list(self.frames)

    def _commit(self, token: int, frames: list[Frame]) -> None:
        if token != self.generation:
            return
        self.frames = frames
        logger.info("Generation pass %s produced %s frame(s)", token, len(frames))

    def delete_frames(self, ids: Iterable[str]) -> None:
        """Remove manual rects outright and hide detected ones."""

        doomed = set(ids)
        # parse every id before touching state so a bad id rejects the whole batch
        routed = {rect_id: RectSource.parse_id(rect_id)[0] for rect_id in doomed}
        manual_ids = {rect_id for rect_id, source in routed.items() if source is RectSource.MANUAL}

        self.frames = [frame for frame in self.frames if frame.id not in doomed]
        if manual_ids:
            self.manual_rects = [rect for rect in self.manual_rects if rect.id not in manual_ids]
        self.hidden_ids |= doomed - manual_ids
        if self.selected_id in doomed:
            self.selected_id = None

    def select(self, rect_id: Optional[str]) -> None:
        """Mark one frame as selected; None clears the selection."""

        if rect_id is not None and rect_id not in {frame.id for frame in self.frames}:
            raise ValidationError(f"Unknown frame id: {rect_id}")
        self.selected_id = rect_id

    def reorder_frames(self, from_index: int, to_index: int) -> None:
        if from_index == to_index:
            return
        if not (0 <= from_index < len(self.frames)) or not (0 <= to_index < len(self.frames)):
            raise ValidationError(f"Frame index out of range: {from_index} -> {to_index}")
        moved = self.frames.pop(from_index)
        self.frames.insert(to_index, moved)

    def clear(self) -> None:
        self.manual_rects = []
        self.frames = []
        self.hidden_ids = set()
        self.selected_id = None
        self.islands.invalidate()

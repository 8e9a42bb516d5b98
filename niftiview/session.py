"""
session.py

Viewing-session state owned by the presentation layer.

A session holds the committed volume, its slices and the slider position.
Every load takes a new request generation; only the result of the newest
generation is committed, so a slow decode of an older file can never
overwrite the display of a newer one.
"""

import logging
import threading
from concurrent.futures import Executor, Future
from typing import Optional, Tuple

from .decoder import DecodedVolume, decode
from .errors import DecodeError
from .io import check_payload, read_payload
from .rasterize import SliceImage, SliceSequence, rasterize

logger = logging.getLogger(__name__)


class ViewerSession:
    def __init__(self, max_voxels: Optional[int] = None):
        self.max_voxels = max_voxels
        self.volume: Optional[DecodedVolume] = None
        self.slices = SliceSequence(())
        self.current_index = 0
        self.error: Optional[DecodeError] = None
        self.committed_generation = 0
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    def begin(self) -> int:
        """Issue the generation number for a new load request."""
        with self._lock:
            self._generation += 1
            return self._generation

    def commit(self, generation, volume=None, slices=None, error=None) -> bool:
        """Publish a finished request unless a newer one has been issued.

        A failed request clears the display and records the error; a
        successful one replaces the slices wholesale and rewinds the slider.
        Returns False when the result was stale and dropped.
        """
        with self._lock:
            if generation != self._generation:
                logger.debug(
                    "Dropping stale result of request %d (latest is %d)",
                    generation,
                    self._generation,
                )
                return False
            self.volume = volume
            self.slices = slices if slices is not None else SliceSequence(())
            self.error = error
            self.current_index = 0
            self.committed_generation = generation
            return True

    def _process(self, generation: int, data: bytes) -> bool:
        try:
            volume = decode(data, max_voxels=self.max_voxels)
            slices = rasterize(volume.voxels, volume.header)
        except DecodeError as e:
            logger.warning("Request %d failed: %s", generation, e.message)
            return self.commit(generation, error=e)
        return self.commit(generation, volume=volume, slices=slices)

    def load(self, payload) -> bool:
        """Decode and rasterize synchronously; EmptyInput is raised, not stored."""
        data = check_payload(payload)
        return self._process(self.begin(), data)

    def load_file(self, path) -> bool:
        return self.load(read_payload(path))

    def submit(self, payload, executor: Executor) -> Future:
        """Run the pipeline on ``executor``; the future resolves to whether it was committed."""
        data = check_payload(payload)
        generation = self.begin()
        return executor.submit(self._process, generation, data)

    @property
    def ok(self) -> bool:
        with self._lock:
            return self.error is None and len(self.slices) > 0

    def slider_range(self) -> Optional[Tuple[int, int]]:
        with self._lock:
            if not self.slices:
                return None
            return 0, len(self.slices) - 1

    def select(self, index: int) -> SliceImage:
        """Move the slider, clamping to the available slices."""
        with self._lock:
            self.current_index = self.slices.clamp(index)
            return self.slices[self.current_index]

    @property
    def current_slice(self) -> Optional[SliceImage]:
        with self._lock:
            if not self.slices:
                return None
            return self.slices[self.current_index]

    def describe(self) -> str:
        with self._lock:
            if self.error is not None:
                return self.error.message
            if self.volume is None:
                return "No volume loaded."
            h = self.volume.header
            return (
                f"NIfTI-{h.version} {h.width}x{h.height}x{h.depth} "
                f"{h.datatype.name.lower()}, slice {self.current_index + 1}/{len(self.slices)}"
            )

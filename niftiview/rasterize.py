"""
rasterize.py

Turn a decoded volume into displayable slices.

- Splits the flat voxel array into contiguous Z slices
- Contrast-stretches each slice on its own min/max to [0, 255]
- Emits grayscale-as-RGBA pixel grids (alpha always 255)
"""

import base64
import io
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Iterator, Tuple

import matplotlib.image as mpimg
import numpy as np

from .decoder import VolumeHeader
from .errors import SliceIndexError

logger = logging.getLogger(__name__)

OPAQUE = 255


@dataclass(frozen=True)
class SliceImage:
    """One rasterized slice: a read-only (height, width, 4) uint8 RGBA grid."""

    index: int
    width: int
    height: int
    pixels: np.ndarray

    @property
    def intensities(self) -> np.ndarray:
        """The grayscale channel as a (height, width) array."""
        return self.pixels[..., 0]

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        mpimg.imsave(buf, self.pixels, format="png")
        return buf.getvalue()

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.to_png()).decode("ascii")
        return f"data:image/png;base64,{encoded}"


class SliceSequence(Sequence):
    """Ordered, immutable slices; item z is spatial index z along the third axis."""

    def __init__(self, slices):
        self._slices: Tuple[SliceImage, ...] = tuple(slices)

    def __len__(self) -> int:
        return len(self._slices)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return SliceSequence(self._slices[index])
        if not -len(self._slices) <= index < len(self._slices):
            raise SliceIndexError(
                f"Slice index {index} out of range for {len(self._slices)} slices."
            )
        return self._slices[index]

    def __iter__(self) -> Iterator[SliceImage]:
        return iter(self._slices)

    def __repr__(self) -> str:
        return f"SliceSequence(n={len(self._slices)})"

    def clamp(self, index: int) -> int:
        """Map any integer into [0, len - 1]."""
        if not self._slices:
            raise SliceIndexError("No slices to select from.")
        return min(max(int(index), 0), len(self._slices) - 1)


def normalize_slice(samples: np.ndarray) -> np.ndarray:
    """Stretch one slice to uint8 intensities on its own min/max.

    A flat slice (max == min) maps to 0 everywhere. Non-finite samples are
    ignored for min/max and rendered as 0.
    """
    values = np.asarray(samples, dtype=np.float64)
    finite = np.isfinite(values)
    out = np.zeros(values.shape, dtype=np.uint8)
    if not finite.any():
        return out

    lo = values[finite].min()
    hi = values[finite].max()
    if hi == lo:
        return out

    scaled = np.rint((values[finite] - lo) / (hi - lo) * 255.0)
    out[finite] = np.clip(scaled, 0, 255).astype(np.uint8)
    return out


def rasterize_slice(samples: np.ndarray, width: int, height: int, index: int = 0) -> SliceImage:
    """Rasterize one slice's flat samples (x fastest) into a SliceImage."""
    samples = np.asarray(samples)
    if samples.size != width * height:
        raise ValueError(
            f"Slice {index} has {samples.size} samples, expected {width}x{height}."
        )
    intensity = normalize_slice(samples).reshape((height, width))

    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[..., 0] = intensity
    pixels[..., 1] = intensity
    pixels[..., 2] = intensity
    pixels[..., 3] = OPAQUE
    pixels.setflags(write=False)
    return SliceImage(index=index, width=width, height=height, pixels=pixels)


def rasterize(voxels: np.ndarray, header: VolumeHeader) -> SliceSequence:
    """Slice the volume along Z and normalize every slice independently."""
    width, height, depth = header.width, header.height, header.depth
    slice_size = header.slice_size
    voxels = np.asarray(voxels).reshape(-1)
    if voxels.size < slice_size * depth:
        raise ValueError(
            f"Voxel buffer holds {voxels.size} samples, expected {slice_size * depth}."
        )

    slices = []
    for z in range(depth):
        samples = voxels[z * slice_size:(z + 1) * slice_size]
        slices.append(rasterize_slice(samples, width, height, index=z))

    logger.debug("Rasterized %d slices of %dx%d", depth, width, height)
    return SliceSequence(slices)

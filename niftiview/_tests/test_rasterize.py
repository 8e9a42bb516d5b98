from __future__ import annotations

import numpy as np
import pytest

from niftiview.decoder import decode
from niftiview.errors import SliceIndexError
from niftiview.rasterize import (
    SliceSequence,
    normalize_slice,
    rasterize,
    rasterize_slice,
)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def test_example_slice_normalizes_linearly(example_bytes) -> None:
    volume = decode(example_bytes)
    slices = rasterize(volume.voxels, volume.header)

    assert len(slices) == 1
    intensities = slices[0].intensities.reshape(-1)
    assert intensities[0] == 0
    assert intensities[-1] == 255
    np.testing.assert_allclose(intensities, [0, 78, 155, 255], atol=1)


def test_slice_count_and_shape(ramp_bytes, ramp_volume) -> None:
    volume = decode(ramp_bytes)
    slices = rasterize(volume.voxels, volume.header)
    width, height, depth = ramp_volume.shape

    assert len(slices) == depth
    for z, image in enumerate(slices):
        assert image.index == z
        assert (image.width, image.height) == (width, height)
        assert image.pixels.shape == (height, width, 4)
        assert image.pixels.dtype == np.uint8
        assert image.intensities.size == width * height


def test_slices_follow_third_axis_order(ramp_bytes, ramp_volume) -> None:
    volume = decode(ramp_bytes)
    slices = rasterize(volume.voxels, volume.header)
    for z in range(ramp_volume.shape[2]):
        # rows are Y, columns are X
        expected = normalize_slice(ramp_volume[:, :, z].T)
        np.testing.assert_array_equal(slices[z].intensities, expected)


def test_per_slice_min_max_stretch(ramp_bytes, ramp_volume) -> None:
    volume = decode(ramp_bytes)
    slices = rasterize(volume.voxels, volume.header)
    for z in (0, 2):
        raw = ramp_volume[:, :, z].T
        gray = slices[z].intensities
        assert gray[raw == raw.min()].max() == 0
        assert gray[raw == raw.max()].min() == 255


def test_flat_slice_is_all_zero(ramp_bytes) -> None:
    volume = decode(ramp_bytes)
    slices = rasterize(volume.voxels, volume.header)
    assert not slices[1].intensities.any()


def test_alpha_is_always_opaque(ramp_bytes) -> None:
    volume = decode(ramp_bytes)
    for image in rasterize(volume.voxels, volume.header):
        assert (image.pixels[..., 3] == 255).all()
        np.testing.assert_array_equal(image.pixels[..., 0], image.pixels[..., 1])
        np.testing.assert_array_equal(image.pixels[..., 0], image.pixels[..., 2])


def test_rasterize_is_deterministic(ramp_bytes) -> None:
    first = rasterize(decode(ramp_bytes).voxels, decode(ramp_bytes).header)
    second = rasterize(decode(ramp_bytes).voxels, decode(ramp_bytes).header)
    for a, b in zip(first, second):
        assert a.pixels.tobytes() == b.pixels.tobytes()


def test_pixels_are_read_only(example_bytes) -> None:
    volume = decode(example_bytes)
    image = rasterize(volume.voxels, volume.header)[0]
    with pytest.raises(ValueError):
        image.pixels[0, 0, 0] = 1


def test_non_finite_samples_render_black() -> None:
    samples = np.array([np.nan, 1.0, 3.0, np.inf], dtype=np.float32)
    assert normalize_slice(samples).tolist() == [0, 0, 255, 0]
    assert normalize_slice(np.full(4, np.nan)).tolist() == [0, 0, 0, 0]


def test_signed_and_float_samples() -> None:
    samples = np.array([-100, 0, 100], dtype=np.int16)
    assert normalize_slice(samples).tolist() == [0, 128, 255]
    samples = np.array([0.25, 0.5, 0.75], dtype=np.float64)
    assert normalize_slice(samples).tolist() == [0, 128, 255]


def test_rasterize_slice_rejects_wrong_size() -> None:
    with pytest.raises(ValueError):
        rasterize_slice(np.zeros(5), width=2, height=2)


def test_slice_sequence_indexing_and_clamp(ramp_bytes) -> None:
    volume = decode(ramp_bytes)
    slices = rasterize(volume.voxels, volume.header)

    assert slices[-1].index == 2
    assert isinstance(slices[1:], SliceSequence)
    assert len(slices[1:]) == 2
    with pytest.raises(SliceIndexError):
        slices[3]
    with pytest.raises(IndexError):
        slices[-4]
    assert slices.clamp(-7) == 0
    assert slices.clamp(99) == 2
    assert slices.clamp(1) == 1

    with pytest.raises(SliceIndexError):
        SliceSequence(()).clamp(0)


def test_png_export(example_bytes) -> None:
    volume = decode(example_bytes)
    image = rasterize(volume.voxels, volume.header)[0]
    png = image.to_png()
    assert png.startswith(PNG_SIGNATURE)
    assert image.to_data_url().startswith("data:image/png;base64,")

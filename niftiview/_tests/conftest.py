from __future__ import annotations

import nibabel as nib
import numpy as np
import pytest


def nifti_bytes(data, image_class=nib.Nifti1Image, extensions=()) -> bytes:
    img = image_class(data, np.eye(4))
    for ext in extensions:
        img.header.extensions.append(ext)
    return img.to_bytes()


@pytest.fixture
def make_nifti():
    return nifti_bytes


@pytest.fixture
def example_volume() -> np.ndarray:
    # 2x2x1, flat (x fastest) order is [0, 10000, 20000, 32767]
    flat = np.array([0, 10000, 20000, 32767], dtype=np.uint16)
    return flat.reshape((2, 2, 1), order="F")


@pytest.fixture
def example_bytes(example_volume) -> bytes:
    return nifti_bytes(example_volume)


@pytest.fixture
def ramp_volume() -> np.ndarray:
    rng = np.random.default_rng(0)
    vol = rng.integers(0, 4000, size=(5, 4, 3), dtype=np.uint16)
    # one flat slice
    vol[:, :, 1] = 77
    return vol


@pytest.fixture
def ramp_bytes(ramp_volume) -> bytes:
    return nifti_bytes(ramp_volume)


@pytest.fixture
def comment_bytes(ramp_volume) -> bytes:
    ext = nib.nifti1.Nifti1Extension(6, b"hello")
    return nifti_bytes(ramp_volume, extensions=[ext])

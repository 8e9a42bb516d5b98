import os

from . import config
from .errors import EmptyInput, UnsupportedSuffix


def has_accepted_suffix(name: str) -> bool:
    """Filename hint only: .nii / .nii.gz (case-insensitive)."""
    return name.lower().endswith(config.ACCEPTED_SUFFIXES)


def check_payload(payload) -> bytes:
    """Reject a missing or empty buffer before it reaches the decoder."""
    if payload is None or len(payload) == 0:
        raise EmptyInput()
    return bytes(payload)


def read_payload(path) -> bytes:
    """Read a .nii / .nii.gz file fully into memory."""
    if not path:
        raise EmptyInput()
    path = os.fspath(path)
    if not has_accepted_suffix(path):
        raise UnsupportedSuffix(
            f"{os.path.basename(path)}: only .nii and .nii.gz files are accepted."
        )
    with open(path, "rb") as f:
        return check_payload(f.read())

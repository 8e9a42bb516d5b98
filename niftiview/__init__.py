"""
niftiview

Decode NIfTI volumes from in-memory bytes and rasterize their slices
into per-slice normalized grayscale images for interactive browsing.
"""

__version__ = "1.0.0"

from .decoder import Datatype, DecodedVolume, ExtensionBlock, VolumeHeader, decode
from .errors import (
    CorruptCompressedStream,
    DecodeError,
    EmptyInput,
    MalformedExtension,
    MalformedHeader,
    NiftiViewError,
    NotThisFormat,
    TruncatedPayload,
    UnsupportedDatatype,
    VolumeTooLarge,
)
from .rasterize import SliceImage, SliceSequence, rasterize
from .session import ViewerSession

__all__ = [
    "Datatype",
    "DecodedVolume",
    "ExtensionBlock",
    "VolumeHeader",
    "decode",
    "rasterize",
    "SliceImage",
    "SliceSequence",
    "ViewerSession",
    "NiftiViewError",
    "DecodeError",
    "NotThisFormat",
    "CorruptCompressedStream",
    "MalformedHeader",
    "UnsupportedDatatype",
    "TruncatedPayload",
    "MalformedExtension",
    "VolumeTooLarge",
    "EmptyInput",
]

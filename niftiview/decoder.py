"""
decoder.py

Decode a NIfTI-1 / NIfTI-2 volume held entirely in memory.

- Inflates gzip payloads (.nii.gz)
- Validates the sizeof_hdr / magic signature
- Parses the header with nibabel's header structs
- Extracts the first 3D volume as a flat, read-only numpy array
- Reads the optional header extension blocks
"""

import gzip
import io
import logging
import zlib
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple

import nibabel as nib
import numpy as np
from nibabel.nifti1 import Nifti1Extensions, data_type_codes, extension_codes
from nibabel.spatialimages import HeaderDataError
from nibabel.volumeutils import native_code, swapped_code

from . import config
from .errors import (
    CorruptCompressedStream,
    MalformedExtension,
    MalformedHeader,
    NotThisFormat,
    TruncatedPayload,
    UnsupportedDatatype,
    VolumeTooLarge,
)

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"

NIFTI1_SIZEOF_HDR = 348
NIFTI2_SIZEOF_HDR = 540
# accepted magics (single file vs detached .hdr/.img pair)
SINGLE_FILE_MAGICS = {1: b"n+1", 2: b"n+2"}
PAIR_MAGICS = {1: b"ni1", 2: b"ni2"}

EXTENSION_ALIGN = 16


class Datatype(IntEnum):
    """NIfTI datatype codes with a supported scalar reader."""

    UINT8 = 2
    INT16 = 4
    INT32 = 8
    FLOAT32 = 16
    FLOAT64 = 64
    INT8 = 256
    UINT16 = 512
    UINT32 = 768
    INT64 = 1024
    UINT64 = 1280

    @property
    def numpy_type(self) -> np.dtype:
        return np.dtype(_NUMPY_TYPES[self])


_NUMPY_TYPES = {
    Datatype.UINT8: "u1",
    Datatype.INT16: "i2",
    Datatype.INT32: "i4",
    Datatype.FLOAT32: "f4",
    Datatype.FLOAT64: "f8",
    Datatype.INT8: "i1",
    Datatype.UINT16: "u2",
    Datatype.UINT32: "u4",
    Datatype.INT64: "i8",
    Datatype.UINT64: "u8",
}


@dataclass(frozen=True)
class VolumeHeader:
    """Structured view of the fields the viewer needs from a NIfTI header."""

    version: int
    dims: Tuple[int, ...]
    datatype: Datatype
    has_extension: bool
    bitpix: int
    pixdim: Tuple[float, ...]
    vox_offset: int
    scl_slope: float
    scl_inter: float
    description: str
    endianness: str
    affine: Tuple[Tuple[float, ...], ...]

    @property
    def width(self) -> int:
        return self.dims[1]

    @property
    def height(self) -> int:
        return self.dims[2]

    @property
    def depth(self) -> int:
        return self.dims[3]

    @property
    def n_volumes(self) -> int:
        n = 1
        for extent in self.dims[4:]:
            n *= extent
        return n

    @property
    def slice_size(self) -> int:
        return self.width * self.height

    @property
    def voxel_count(self) -> int:
        return self.slice_size * self.depth

    @property
    def sizeof_hdr(self) -> int:
        return NIFTI1_SIZEOF_HDR if self.version == 1 else NIFTI2_SIZEOF_HDR


@dataclass(frozen=True)
class ExtensionBlock:
    code: int
    content: bytes

    @property
    def label(self) -> str:
        return extension_codes.label.get(self.code, "unknown")


@dataclass(frozen=True)
class DecodedVolume:
    header: VolumeHeader
    voxels: np.ndarray
    extensions: Tuple[ExtensionBlock, ...] = ()

    @property
    def array(self) -> np.ndarray:
        """The voxels as an (X, Y, Z) array, matching nibabel's axis order."""
        h = self.header
        return self.voxels.reshape((h.width, h.height, h.depth), order="F")


def is_compressed(data: bytes) -> bool:
    return data[:2] == GZIP_MAGIC


def decompress(data: bytes, limit: Optional[int] = None) -> bytes:
    """Inflate a gzip payload, refusing to produce more than ``limit`` bytes."""
    if limit is None:
        limit = config.MAX_DECOMPRESSED_BYTES
    try:
        with gzip.GzipFile(fileobj=io.BytesIO(data)) as stream:
            out = stream.read(limit + 1)
    except (OSError, EOFError, zlib.error) as e:
        raise CorruptCompressedStream(
            f"The compressed file is corrupt and could not be decompressed ({e})."
        ) from e
    if len(out) > limit:
        raise VolumeTooLarge(
            f"Decompressed payload exceeds the limit of {limit} bytes."
        )
    return out


def _header_struct(data: bytes):
    """Return (nifti version, nibabel header) or raise NotThisFormat.

    A detached-header magic (ni1/ni2) is recognised as NIfTI but rejected,
    since its voxels live in a separate .img file.
    """
    for version, klass in ((1, nib.Nifti1Header), (2, nib.Nifti2Header)):
        if not klass.may_contain_header(data):
            continue
        block = bytes(data[:klass.sizeof_hdr])
        hdr = klass(binaryblock=block, check=False)
        if int(hdr["sizeof_hdr"]) != klass.sizeof_hdr:
            # nibabel guesses byte order from dim[0]; sizeof_hdr settles it
            other = swapped_code if hdr.endianness == native_code else native_code
            hdr = klass(binaryblock=block, endianness=other, check=False)
            if int(hdr["sizeof_hdr"]) != klass.sizeof_hdr:
                continue
        magic = hdr["magic"].item()[:3]
        if magic == SINGLE_FILE_MAGICS[version]:
            return version, hdr
        if magic == PAIR_MAGICS[version]:
            raise MalformedHeader(
                "Detached NIfTI header (.hdr/.img pair) carries no voxel data."
            )
    raise NotThisFormat()


def detect_version(data: bytes) -> Tuple[int, str]:
    """Return (nifti version, endianness) or raise NotThisFormat."""
    version, hdr = _header_struct(data)
    return version, hdr.endianness


def _spatial_dims(raw_dims) -> Tuple[int, ...]:
    dims = [int(d) for d in raw_dims]
    ndim = dims[0]
    if not 1 <= ndim <= 7:
        raise MalformedHeader(f"Invalid number of dimensions dim[0]={ndim}.")
    # extents beyond dim[0] are unused and read as 1
    for i in range(ndim + 1, 8):
        dims[i] = 1
    for axis, extent in zip("XYZ", dims[1:4]):
        if extent < 1:
            raise MalformedHeader(f"Invalid {axis} extent {extent}.")
    return tuple(dims)


def _voxel_offset(raw_offset, sizeof_hdr: int) -> int:
    first_free = sizeof_hdr + 4
    offset = float(raw_offset)
    if offset == 0:
        logger.debug("vox_offset is 0, using %d", first_free)
        return first_free
    if not offset.is_integer() or offset < first_free:
        raise MalformedHeader(f"Invalid vox_offset {raw_offset}.")
    return int(offset)


def _datatype(code: int) -> Datatype:
    try:
        return Datatype(code)
    except ValueError:
        label = data_type_codes.label.get(code, "unknown")
        raise UnsupportedDatatype(
            code, f"Unsupported NIfTI datatype {code} ({label})."
        ) from None


def read_header(data: bytes, max_voxels: Optional[int] = None) -> VolumeHeader:
    """Parse and validate the header region of an uncompressed payload."""
    if max_voxels is None:
        max_voxels = config.MAX_VOXELS
    version, hdr = _header_struct(data)
    sizeof_hdr = hdr.sizeof_hdr

    dims = _spatial_dims(hdr["dim"])
    voxel_count = dims[1] * dims[2] * dims[3]
    if voxel_count > max_voxels:
        raise VolumeTooLarge(
            f"Volume of {dims[1]}x{dims[2]}x{dims[3]} voxels exceeds the "
            f"limit of {max_voxels} voxels."
        )
    datatype = _datatype(int(hdr["datatype"]))
    vox_offset = _voxel_offset(hdr["vox_offset"], sizeof_hdr)

    try:
        affine = hdr.get_best_affine()
    except (HeaderDataError, ValueError, np.linalg.LinAlgError) as e:
        raise MalformedHeader(f"Invalid spatial transform: {e}") from e

    has_extension = len(data) > sizeof_hdr and data[sizeof_hdr] != 0
    descrip = hdr["descrip"].item()
    return VolumeHeader(
        version=version,
        dims=dims,
        datatype=datatype,
        has_extension=bool(has_extension),
        bitpix=int(hdr["bitpix"]),
        pixdim=tuple(float(p) for p in hdr["pixdim"]),
        vox_offset=vox_offset,
        scl_slope=float(hdr["scl_slope"]),
        scl_inter=float(hdr["scl_inter"]),
        description=descrip.decode("latin-1").rstrip("\x00"),
        endianness=hdr.endianness,
        affine=tuple(tuple(float(v) for v in row) for row in affine),
    )


def read_voxels(header: VolumeHeader, data: bytes) -> np.ndarray:
    """Extract the first 3D volume as a flat native-endian array."""
    dtype = header.datatype.numpy_type.newbyteorder(header.endianness)
    count = header.voxel_count
    end = header.vox_offset + count * dtype.itemsize
    if len(data) < end:
        raise TruncatedPayload(
            f"Expected {end} bytes for {count} voxels, got {len(data)}."
        )
    voxels = np.frombuffer(data, dtype=dtype, count=count, offset=header.vox_offset)
    voxels = voxels.astype(dtype.newbyteorder("="))
    voxels.setflags(write=False)
    return voxels


def read_extensions(header: VolumeHeader, data: bytes) -> Tuple[ExtensionBlock, ...]:
    """Read the extension blocks between the header and the voxel data.

    nibabel parses the blocks from the extension region only, so a block
    running past vox_offset comes back short and fails. Misaligned sizes,
    which nibabel merely warns about, are rejected as well.
    """
    if not header.has_extension:
        return ()
    start = header.sizeof_hdr + 4
    region = data[start:min(header.vox_offset, len(data))]
    if len(region) < EXTENSION_ALIGN:
        raise MalformedExtension(
            "Extension flag is set but there is no room for an extension block."
        )

    stream = io.BytesIO(region)
    try:
        extensions = Nifti1Extensions.from_fileobj(
            stream, len(region), header.endianness != native_code
        )
    except (HeaderDataError, ValueError) as e:
        raise MalformedExtension(
            f"Extension region ending at voxel offset {header.vox_offset} "
            f"is malformed ({e})."
        ) from e
    consumed = stream.tell()
    if consumed % EXTENSION_ALIGN:
        raise MalformedExtension(
            f"Extension blocks span {consumed} bytes, not a multiple of "
            f"{EXTENSION_ALIGN}."
        )
    return tuple(
        ExtensionBlock(code=int(ext.get_code()), content=ext.content)
        for ext in extensions
    )


def decode(buffer, max_voxels: Optional[int] = None) -> DecodedVolume:
    """Decode a complete NIfTI payload.

    Args:
        buffer: The raw file contents (bytes, bytearray or memoryview),
            optionally gzip compressed.
        max_voxels: Refuse volumes with more voxels than this
            (default config.MAX_VOXELS).

    Returns:
        DecodedVolume with the header, a flat read-only voxel array and the
        extension blocks.

    Raises:
        DecodeError: one of its subclasses, depending on what is wrong with
        the payload.
    """
    data = bytes(buffer)
    if is_compressed(data):
        logger.debug("Decompressing %d byte gzip payload", len(data))
        data = decompress(data)

    header = read_header(data, max_voxels=max_voxels)
    voxels = read_voxels(header, data)
    extensions = read_extensions(header, data)
    logger.debug(
        "Decoded NIfTI-%d volume %dx%dx%d (%s, %d extensions)",
        header.version,
        header.width,
        header.height,
        header.depth,
        header.datatype.name,
        len(extensions),
    )
    return DecodedVolume(header=header, voxels=voxels, extensions=extensions)

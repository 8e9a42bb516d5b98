"""
errors.py

Exception hierarchy for decoding and browsing NIfTI volumes.

Every failure raised while decoding a payload is a ``DecodeError``
subclass carrying a stable ``kind`` string and a user-facing ``message``,
so the presentation layer can render it without inspecting tracebacks.
"""


class NiftiViewError(Exception):
    """Base class for all niftiview errors."""

    kind = "error"
    default_message = "Unexpected error."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class DecodeError(NiftiViewError):
    kind = "decode_error"
    default_message = "The file could not be decoded."


class NotThisFormat(DecodeError):
    kind = "not_this_format"
    default_message = "Not a valid NIfTI file."


class CorruptCompressedStream(DecodeError):
    kind = "corrupt_compressed_stream"
    default_message = "The compressed file is corrupt and could not be decompressed."


class MalformedHeader(DecodeError):
    kind = "malformed_header"
    default_message = "The NIfTI header is malformed."


class UnsupportedDatatype(DecodeError):
    kind = "unsupported_datatype"
    default_message = "The voxel datatype of this file is not supported."

    def __init__(self, code, message=None):
        self.code = code
        super().__init__(message or f"Unsupported NIfTI datatype code {code}.")


class TruncatedPayload(DecodeError):
    kind = "truncated_payload"
    default_message = "The file is shorter than its header declares."


class MalformedExtension(DecodeError):
    kind = "malformed_extension"
    default_message = "A NIfTI header extension block is unreadable."


class VolumeTooLarge(DecodeError):
    kind = "volume_too_large"
    default_message = "The volume exceeds the configured size limit."


class InputError(NiftiViewError):
    kind = "input_error"
    default_message = "Invalid input."


class EmptyInput(InputError):
    kind = "empty_input"
    default_message = "No file was supplied."


class UnsupportedSuffix(InputError):
    kind = "unsupported_suffix"
    default_message = "Only .nii and .nii.gz files are accepted."


class SliceIndexError(NiftiViewError, IndexError):
    kind = "slice_index"
    default_message = "Slice index out of range."

"""Errors raised while decoding and rendering DICOM ECG waveforms."""

from pydicom.errors import InvalidDicomError


class ECGError(Exception):
    """Base class for every rendering failure of this package."""


class UnsupportedFormat(ECGError, ValueError):
    """The dataset is not a waveform object this renderer can decode.

    Raised for a SOP class outside the allow-list, a missing or empty
    waveform sequence, a sample format other than signed 16 bit, missing
    channel definitions and a sample buffer shorter than declared.
    """


class InvalidGeometry(ECGError, ValueError):
    """The computed drawing has no area (width or height <= 0)."""


class ECGReadFileError(InvalidDicomError):
    """The source could not be parsed as a DICOM dataset."""

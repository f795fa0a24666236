"""Writing computed fields to TIFF and DICOM images."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

import numpy as np
from PIL import Image

from .dicom import (
    BITS_ALLOCATED,
    BITS_STORED,
    COLUMNS,
    DOUBLE_FLOAT_PIXEL_DATA,
    FLOAT_PIXEL_DATA,
    HIGH_BIT,
    PIXEL_DATA,
    RESCALE_INTERCEPT,
    RESCALE_SLOPE,
    ROWS,
    SECONDARY_CAPTURE_IMAGE_STORAGE,
    SOP_CLASS_UID,
    SOP_INSTANCE_UID,
    DicomDataset,
    DicomError,
    write_dicom_file,
)
from .postprocessing import Postprocessor

PATIENT_NAME = (0x0010, 0x0010)
PATIENT_ID = (0x0010, 0x0020)
STUDY_INSTANCE_UID = (0x0020, 0x000D)
SERIES_INSTANCE_UID = (0x0020, 0x000E)
SAMPLES_PER_PIXEL = (0x0028, 0x0002)
PHOTOMETRIC_INTERPRETATION = (0x0028, 0x0004)
PIXEL_REPRESENTATION = (0x0028, 0x0103)

_UINT8_MAX = 255
_UINT16_MAX = 65535
_INSTANCE_UID = "1337"


class ImageWriteError(RuntimeError):
    """Raised when an image cannot be written."""


def _has_extension(filename: str, accepted: tuple[str, ...]) -> bool:
    return filename.rsplit(".", 1)[-1] in accepted


def _truncate(mat: np.ndarray, limit: float) -> np.ndarray:
    return np.where(mat > limit, limit, mat)


def _to_unsigned(mat: np.ndarray, dtype: type) -> np.ndarray:
    """Saturating conversion to an unsigned integer type with rounding."""
    info = np.iinfo(dtype)
    values = np.nan_to_num(np.asarray(mat, dtype=np.float64), nan=0.0,
                           posinf=float(info.max), neginf=0.0)
    return np.clip(np.rint(values), info.min, info.max).astype(dtype)


def _format_decimal(value: float) -> str:
    return f"{value:f}"


class ImageHandler(ABC):
    """Exports a two-dimensional array to an image file."""

    @abstractmethod
    def output_image(self, mat: np.ndarray, filename: str | Path) -> None:
        """Write ``mat`` to ``filename``, adding the format's extension if missing."""


class TiffHandler(ImageHandler):
    """Exports arrays as TIFF images."""

    def output_image(self, mat: np.ndarray, filename: str | Path) -> None:
        name = str(filename)
        if not _has_extension(name, ("tiff", "tif")):
            name += ".tiff"
        converted = self.convert_pixel_data(np.array(mat, copy=True))
        try:
            Image.fromarray(np.ascontiguousarray(converted)).save(name, format="TIFF")
        except (OSError, ValueError, TypeError) as err:
            raise ImageWriteError("Could not save the image as TIFF.") from err

    @abstractmethod
    def convert_pixel_data(self, mat: np.ndarray) -> np.ndarray:
        """Return the pixel data in the form stored in the TIFF file."""


class TiffUint8Handler(TiffHandler):
    """TIFF with 8-bit unsigned pixels, postprocessed after conversion."""

    def __init__(self, postprocessor: Postprocessor) -> None:
        self.postprocessor = postprocessor

    def convert_pixel_data(self, mat: np.ndarray) -> np.ndarray:
        converted = _to_unsigned(_truncate(mat, _UINT8_MAX), np.uint8)
        return self.postprocessor.process(converted)


class TiffUint16Handler(TiffHandler):
    """TIFF with 16-bit unsigned pixels, postprocessed after conversion."""

    def __init__(self, postprocessor: Postprocessor) -> None:
        self.postprocessor = postprocessor

    def convert_pixel_data(self, mat: np.ndarray) -> np.ndarray:
        converted = _to_unsigned(_truncate(mat, _UINT16_MAX), np.uint16)
        return self.postprocessor.process(converted)


class TiffFloat32Handler(TiffHandler):
    """TIFF with 32-bit floating point pixels."""

    def convert_pixel_data(self, mat: np.ndarray) -> np.ndarray:
        return np.asarray(mat, dtype=np.float32)


class DicomHandler(ImageHandler):
    """Exports arrays as secondary capture DICOM files."""

    def output_image(self, mat: np.ndarray, filename: str | Path) -> None:
        name = str(filename)
        if not _has_extension(name, ("dcm",)):
            name += ".dcm"
        source = np.asarray(mat)
        dataset = DicomDataset()
        dataset.set(PATIENT_NAME, "PN", "FloodFieldCalculator")
        dataset.set(PATIENT_ID, "LO", "1337")
        dataset.set(STUDY_INSTANCE_UID, "UI", _INSTANCE_UID)
        dataset.set(SERIES_INSTANCE_UID, "UI", _INSTANCE_UID)
        dataset.set(SOP_INSTANCE_UID, "UI", _INSTANCE_UID)
        dataset.set(SOP_CLASS_UID, "UI", SECONDARY_CAPTURE_IMAGE_STORAGE)
        dataset.set(ROWS, "US", int(source.shape[0]))
        dataset.set(COLUMNS, "US", int(source.shape[1]))
        dataset.set(SAMPLES_PER_PIXEL, "US", 1)
        dataset.set(PIXEL_REPRESENTATION, "US", 0)
        dataset.set(PHOTOMETRIC_INTERPRETATION, "CS", "MONOCHROME2")
        self.set_pixel_data(np.array(source, copy=True), dataset)
        try:
            write_dicom_file(name, dataset)
        except DicomError as err:
            raise ImageWriteError(str(err)) from err

    @abstractmethod
    def set_pixel_data(self, mat: np.ndarray, dataset: DicomDataset) -> None:
        """Store the pixel data and its layout tags in ``dataset``."""


def _set_bits(dataset: DicomDataset, bits: int) -> None:
    dataset.set(BITS_ALLOCATED, "US", bits)
    dataset.set(BITS_STORED, "US", bits)
    dataset.set(HIGH_BIT, "US", bits - 1)


class DicomUint8Handler(DicomHandler):
    """DICOM with 8-bit unsigned pixels, optionally scaled via a rescale slope."""

    _RESCALE_SLOPE = 0.01

    def __init__(self, use_rescale_slope: bool, postprocessor: Postprocessor) -> None:
        self.use_rescale_slope = use_rescale_slope
        self.postprocessor = postprocessor

    def set_pixel_data(self, mat: np.ndarray, dataset: DicomDataset) -> None:
        values = np.asarray(mat, dtype=np.float64)
        if not self.use_rescale_slope:
            values = _truncate(values, _UINT8_MAX)
        else:
            intercept = float(np.min(values))
            values = values * (1 / self._RESCALE_SLOPE)
            dataset.set(RESCALE_SLOPE, "DS", _format_decimal(self._RESCALE_SLOPE))
            dataset.set(RESCALE_INTERCEPT, "DS", _format_decimal(intercept))
        converted = self.postprocessor.process(_to_unsigned(values, np.uint8))
        _set_bits(dataset, 8)
        dataset.set(PIXEL_DATA, "OB", np.asarray(converted, dtype=np.uint8))


class DicomUint16Handler(DicomHandler):
    """DICOM with 16-bit unsigned pixels, optionally scaled via a rescale slope."""

    _RESCALE_SLOPE = 0.0001
    _RESCALE_INTERCEPT = 0.0

    def __init__(self, use_rescale_slope: bool, postprocessor: Postprocessor) -> None:
        self.use_rescale_slope = use_rescale_slope
        self.postprocessor = postprocessor

    def set_pixel_data(self, mat: np.ndarray, dataset: DicomDataset) -> None:
        values = np.asarray(mat, dtype=np.float64)
        if not self.use_rescale_slope:
            values = _truncate(values, _UINT16_MAX)
        else:
            values = values * (1 / self._RESCALE_SLOPE)
            dataset.set(RESCALE_SLOPE, "DS", _format_decimal(self._RESCALE_SLOPE))
            dataset.set(RESCALE_INTERCEPT, "DS", _format_decimal(self._RESCALE_INTERCEPT))
        converted = self.postprocessor.process(_to_unsigned(values, np.uint16))
        _set_bits(dataset, 16)
        dataset.set(PIXEL_DATA, "OW", np.asarray(converted, dtype=np.uint16))


class DicomFloat32Handler(DicomHandler):
    """DICOM with 32-bit floating point pixels."""

    def set_pixel_data(self, mat: np.ndarray, dataset: DicomDataset) -> None:
        _set_bits(dataset, 32)
        dataset.set(FLOAT_PIXEL_DATA, "OF", np.asarray(mat, dtype=np.float32))


class DicomFloat64Handler(DicomHandler):
    """DICOM with 64-bit floating point pixels."""

    def set_pixel_data(self, mat: np.ndarray, dataset: DicomDataset) -> None:
        _set_bits(dataset, 64)
        dataset.set(DOUBLE_FLOAT_PIXEL_DATA, "OD", np.asarray(mat, dtype=np.float64))
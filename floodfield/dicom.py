"""Minimal DICOM file reading and writing for single-frame grey images."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

from .fsutil import directory_exists, file_exists

logger = logging.getLogger(__name__)

Tag = tuple[int, int]

EXPLICIT_VR_LITTLE_ENDIAN = "1.2.840.10008.1.2.1"
SECONDARY_CAPTURE_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.7"

ROWS: Tag = (0x0028, 0x0010)
COLUMNS: Tag = (0x0028, 0x0011)
BITS_ALLOCATED: Tag = (0x0028, 0x0100)
BITS_STORED: Tag = (0x0028, 0x0101)
HIGH_BIT: Tag = (0x0028, 0x0102)
RESCALE_INTERCEPT: Tag = (0x0028, 0x1052)
RESCALE_SLOPE: Tag = (0x0028, 0x1053)
INSTANCE_NUMBER: Tag = (0x0020, 0x0013)
SOP_CLASS_UID: Tag = (0x0008, 0x0016)
SOP_INSTANCE_UID: Tag = (0x0008, 0x0018)
PIXEL_DATA: Tag = (0x7FE0, 0x0010)
FLOAT_PIXEL_DATA: Tag = (0x7FE0, 0x0008)
DOUBLE_FLOAT_PIXEL_DATA: Tag = (0x7FE0, 0x0009)
LOG_FLAG: Tag = (0x7031, 0x1009)
DETECTOR_FOCAL_CENTER_AXIAL_POSITION: Tag = (0x7031, 0x1002)
DARK_FIELD_CORRECTION_FLAG: Tag = (0x7039, 0x1005)
FLAT_FIELD_CORRECTION_FLAG: Tag = (0x7039, 0x1006)

_LONG_VRS = {"OB", "OD", "OF", "OL", "OW", "SQ", "UC", "UN", "UR", "UT"}
_NUMERIC_VRS = {"US": "H", "SS": "h", "UL": "I", "SL": "i", "FL": "f", "FD": "d"}
_BINARY_DTYPES = {"OB": "u1", "OW": "<u2", "OF": "<f4", "OD": "<f8", "UN": "u1"}
_PREAMBLE = b"\x00" * 128 + b"DICM"


class DicomError(RuntimeError):
    """Raised when a DICOM file cannot be read or written."""


@dataclass
class DicomDataset:
    """Data elements keyed by (group, element) with their value representation."""

    elements: dict[Tag, tuple[str, Any]] = field(default_factory=dict)

    def set(self, tag: Tag, vr: str, value: Any) -> None:
        self.elements[tag] = (vr, value)

    def get(self, tag: Tag) -> Any:
        """The value stored under ``tag``, or None."""
        entry = self.elements.get(tag)
        return None if entry is None else entry[1]

    def __contains__(self, tag: Tag) -> bool:
        return tag in self.elements


@dataclass
class DicomImage:
    """Pixel values as float64 together with the dataset they came from."""

    mat: np.ndarray
    dataset: DicomDataset


def _encode_value(vr: str, value: Any) -> bytes:
    if vr in _NUMERIC_VRS:
        values = [value] if np.isscalar(value) else list(value)
        return struct.pack(f"<{len(values)}{_NUMERIC_VRS[vr]}", *values)
    if vr in _BINARY_DTYPES:
        data = value if isinstance(value, bytes) else np.asarray(value).astype(_BINARY_DTYPES[vr]).tobytes()
    else:
        data = str(value).encode("ascii")
        if len(data) % 2:
            data += b"\x00" if vr == "UI" else b" "
        return data
    if len(data) % 2:
        data += b"\x00"
    return data


def _decode_value(vr: str, data: bytes) -> Any:
    if vr in _NUMERIC_VRS:
        size = struct.calcsize(_NUMERIC_VRS[vr])
        values = list(struct.unpack(f"<{len(data) // size}{_NUMERIC_VRS[vr]}", data))
        return values[0] if len(values) == 1 else values
    if vr in _BINARY_DTYPES or vr in _LONG_VRS:
        return data
    return data.decode("ascii", errors="replace").rstrip("\x00 ")


def _encode_element(tag: Tag, vr: str, value: Any) -> bytes:
    data = _encode_value(vr, value)
    head = struct.pack("<HH", *tag) + vr.encode("ascii")
    if vr in _LONG_VRS:
        return head + b"\x00\x00" + struct.pack("<I", len(data)) + data
    if len(data) > 0xFFFF:
        raise DicomError(f"Value too long for VR {vr}")
    return head + struct.pack("<H", len(data)) + data


def write_dicom_file(path: str | Path, dataset: DicomDataset) -> None:
    """Write ``dataset`` as an explicit VR little endian DICOM file."""
    meta = [
        ((0x0002, 0x0001), "OB", b"\x00\x01"),
        ((0x0002, 0x0002), "UI", dataset.get(SOP_CLASS_UID) or SECONDARY_CAPTURE_IMAGE_STORAGE),
        ((0x0002, 0x0003), "UI", dataset.get(SOP_INSTANCE_UID) or "1"),
        ((0x0002, 0x0010), "UI", EXPLICIT_VR_LITTLE_ENDIAN),
    ]
    meta_bytes = b"".join(_encode_element(*item) for item in meta)
    body = b"".join(
        _encode_element(tag, vr, value)
        for tag, (vr, value) in sorted(dataset.elements.items())
        if tag[0] != 0x0002
    )
    content = (_PREAMBLE + _encode_element((0x0002, 0x0000), "UL", len(meta_bytes))
               + meta_bytes + body)
    try:
        Path(path).write_bytes(content)
    except OSError as err:
        raise DicomError(f"cannot write DICOM file ({err})") from err


def read_dicom_file(path: str | Path) -> DicomDataset:
    """Read an explicit VR little endian DICOM file into a dataset."""
    try:
        content = Path(path).read_bytes()
    except OSError as err:
        raise DicomError(f"Unable to open DICOM document: {path}") from err
    if content[128:132] != b"DICM":
        raise DicomError(f"Unable to open DICOM document: {path}")
    dataset = DicomDataset()
    offset = 132
    try:
        while offset < len(content):
            group, element = struct.unpack_from("<HH", content, offset)
            vr = content[offset + 4:offset + 6].decode("ascii")
            if vr in _LONG_VRS:
                (length,) = struct.unpack_from("<I", content, offset + 8)
                offset += 12
            else:
                (length,) = struct.unpack_from("<H", content, offset + 6)
                offset += 8
            if length == 0xFFFFFFFF or offset + length > len(content):
                raise DicomError(f"Unsupported or truncated element in {path}")
            tag = (group, element)
            if tag == (0x0002, 0x0010):
                syntax = _decode_value(vr, content[offset:offset + length])
                if syntax != EXPLICIT_VR_LITTLE_ENDIAN:
                    raise DicomError(f"Unsupported transfer syntax {syntax} in {path}")
            if group != 0x0002:
                dataset.set(tag, vr, _decode_value(vr, content[offset:offset + length]))
            offset += length
    except (struct.error, UnicodeDecodeError) as err:
        raise DicomError(f"Unable to open DICOM document: {path}") from err
    return dataset


def _float_tag(dataset: DicomDataset, tag: Tag, name: str) -> float | None:
    value = dataset.get(tag)
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.error("%s tag found, but contain broken data", name)
        return None
    logger.debug("%s tag found (%s)", name, number)
    return number


def _read_image(path: str | Path) -> DicomImage:
    logger.debug("Reading DICOM .. %s", path)
    dataset = read_dicom_file(path)
    rows = int(dataset.get(ROWS) or 0)
    cols = int(dataset.get(COLUMNS) or 0)
    bits = dataset.get(BITS_ALLOCATED)

    if PIXEL_DATA in dataset:
        dtype = {16: "<u2", 8: "u1"}.get(bits)
        if dtype is None:
            raise DicomError(f"Unsupported pixel data type in DICOM file {path}")
        raw = dataset.get(PIXEL_DATA)
    elif FLOAT_PIXEL_DATA in dataset:
        dtype, raw = "<f4", dataset.get(FLOAT_PIXEL_DATA)
    elif DOUBLE_FLOAT_PIXEL_DATA in dataset:
        dtype, raw = "<f8", dataset.get(DOUBLE_FLOAT_PIXEL_DATA)
    else:
        raise DicomError(f"Unsupported pixel data type in DICOM file {path}")

    count = rows * cols
    pixels = np.frombuffer(raw, dtype=dtype)
    if pixels.size < count:
        raise DicomError(f"Pixel data too short in DICOM file {path}")
    img = pixels[:count].reshape(rows, cols).astype(np.float64)

    slope = _float_tag(dataset, RESCALE_SLOPE, "Rescale slope")
    if slope is not None:
        img = img * slope
    intercept = _float_tag(dataset, RESCALE_INTERCEPT, "Rescale intercept")
    if intercept is not None:
        img = img + intercept
    log_flag = dataset.get(LOG_FLAG)
    if isinstance(log_flag, str) and log_flag == "YES":
        img = np.exp(-img) * 64000
    return DicomImage(img, dataset)


def read_dicom(path: str | Path) -> DicomImage:
    """Read one DICOM file, or the mean image of all ``.dcm`` files in a directory."""
    if file_exists(path):
        return _read_image(path)
    if not directory_exists(path):
        raise DicomError(f"Provided dicom {path} does not exist")
    images = read_dicoms(path)
    if not images:
        raise DicomError(f"Provided dicom folder {path} is empty")
    mean = sum((image.mat for image in images), np.zeros_like(images[0].mat)) / len(images)
    return DicomImage(mean, images[0].dataset)


def _dcm_files(path: str | Path) -> list[str]:
    return sorted(str(p) for p in Path(path).iterdir() if p.is_file() and p.suffix == ".dcm")


def read_dicoms(path: str | Path) -> list[DicomImage]:
    """Read every ``.dcm`` file directly inside ``path``."""
    return [read_dicom(p) for p in _dcm_files(path)]


def read_dicoms_ordered(path: str | Path) -> list[DicomImage]:
    """Read every ``.dcm`` file in ``path`` ordered by instance number."""
    return [read_dicom(p) for p in sort_input_files(_dcm_files(path))]


def sort_input_files(input_files: list[str]) -> list[str]:
    """Order DICOM files by their instance number."""
    numbered = []
    for dicom_path in input_files:
        try:
            dataset = read_dicom_file(dicom_path)
        except DicomError as err:
            raise DicomError(f"Failed to load DICOM file: {dicom_path}") from err
        instance = dataset.get(INSTANCE_NUMBER)
        if instance is None:
            raise DicomError("Failed to retrieve Instance Number attribute (0020,0013).")
        numbered.append((dicom_path, int(instance)))
    numbered.sort(key=lambda item: item[1])
    return [name for name, _ in numbered]
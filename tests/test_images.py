import numpy as np
import pytest
from PIL import Image

from floodfield.dicom import (
    BITS_ALLOCATED,
    COLUMNS,
    HIGH_BIT,
    RESCALE_INTERCEPT,
    RESCALE_SLOPE,
    ROWS,
    SOP_CLASS_UID,
    SECONDARY_CAPTURE_IMAGE_STORAGE,
    read_dicom,
    read_dicom_file,
)
from floodfield.images import (
    PATIENT_ID,
    PATIENT_NAME,
    PHOTOMETRIC_INTERPRETATION,
    DicomFloat32Handler,
    DicomFloat64Handler,
    DicomUint8Handler,
    DicomUint16Handler,
    ImageWriteError,
    TiffFloat32Handler,
    TiffUint8Handler,
    TiffUint16Handler,
)
from floodfield.postprocessing import BasicPostprocessor, Postprocessor


def _identity(mat):
    return BasicPostprocessor(0, mat.shape[1], mat.shape[0], False)


class _Recording(Postprocessor):
    def __init__(self):
        self.seen = []

    def process(self, mat):
        self.seen.append(mat.dtype)
        return mat


def _read_tiff(path):
    with Image.open(path) as img:
        return np.array(img)


def test_tiff_uint8_truncates_and_appends_extension(tmp_path):
    mat = np.array([[0.0, 100.4], [300.0, -5.0]])
    TiffUint8Handler(_identity(mat)).output_image(mat, tmp_path / "field")
    data = _read_tiff(tmp_path / "field.tiff")
    assert data.dtype == np.uint8
    assert data.tolist() == [[0, 100], [255, 0]]


def test_tiff_keeps_tif_extension(tmp_path):
    mat = np.ones((2, 3))
    TiffUint8Handler(_identity(mat)).output_image(mat, str(tmp_path / "field.tif"))
    assert (tmp_path / "field.tif").exists()
    assert not (tmp_path / "field.tif.tiff").exists()


def test_tiff_uint16_truncates_at_max(tmp_path):
    mat = np.array([[70000.0, 1000.0], [0.0, 65535.0]])
    TiffUint16Handler(_identity(mat)).output_image(mat, tmp_path / "f16")
    data = _read_tiff(tmp_path / "f16.tiff")
    assert data.tolist() == [[65535, 1000], [0, 65535]]


def test_tiff_postprocessor_receives_converted_data(tmp_path):
    recording = _Recording()
    TiffUint16Handler(recording).output_image(np.ones((2, 2)), tmp_path / "p")
    assert recording.seen == [np.dtype(np.uint16)]


def test_tiff_float32_preserves_values(tmp_path):
    mat = np.array([[0.25, -1.5], [3.75, 1e6]])
    TiffFloat32Handler().output_image(mat, tmp_path / "flt")
    data = _read_tiff(tmp_path / "flt.tiff")
    assert data.dtype == np.float32
    np.testing.assert_allclose(data, mat)


def test_tiff_write_failure_raises(tmp_path):
    with pytest.raises(ImageWriteError):
        TiffFloat32Handler().output_image(np.ones((2, 2)), tmp_path / "missing" / "x")


def test_dicom_header_tags(tmp_path):
    mat = np.full((2, 3), 5.0)
    DicomUint16Handler(False, _identity(mat)).output_image(mat, tmp_path / "img")
    dataset = read_dicom_file(tmp_path / "img.dcm")
    assert dataset.get(PATIENT_NAME) == "FloodFieldCalculator"
    assert dataset.get(PATIENT_ID) == "1337"
    assert dataset.get(SOP_CLASS_UID) == SECONDARY_CAPTURE_IMAGE_STORAGE
    assert dataset.get(PHOTOMETRIC_INTERPRETATION) == "MONOCHROME2"
    assert (dataset.get(ROWS), dataset.get(COLUMNS)) == (2, 3)


def test_dicom_keeps_dcm_extension(tmp_path):
    mat = np.ones((2, 2))
    DicomFloat64Handler().output_image(mat, tmp_path / "a.dcm")
    assert (tmp_path / "a.dcm").exists()
    assert not (tmp_path / "a.dcm.dcm").exists()


def test_dicom_uint16_truncates(tmp_path):
    mat = np.array([[70000.0, 12.0], [0.0, 3.0]])
    DicomUint16Handler(False, _identity(mat)).output_image(mat, tmp_path / "t")
    image = read_dicom(tmp_path / "t.dcm")
    assert image.mat.tolist() == [[65535.0, 12.0], [0.0, 3.0]]
    assert image.dataset.get(BITS_ALLOCATED) == 16
    assert image.dataset.get(HIGH_BIT) == 15


def test_dicom_uint16_rescale_round_trip(tmp_path):
    mat = np.array([[1.5, 0.25], [2.0, 0.0]])
    DicomUint16Handler(True, _identity(mat)).output_image(mat, tmp_path / "r")
    image = read_dicom(tmp_path / "r.dcm")
    assert image.dataset.get(RESCALE_SLOPE) == "0.000100"
    assert image.dataset.get(RESCALE_INTERCEPT) == "0.000000"
    np.testing.assert_allclose(image.mat, mat, atol=1e-4)


def test_dicom_uint8_rescale_uses_minimum_as_intercept(tmp_path):
    mat = np.array([[0.5, 1.0], [2.0, 0.75]])
    DicomUint8Handler(True, _identity(mat)).output_image(mat, tmp_path / "u8")
    image = read_dicom(tmp_path / "u8.dcm")
    assert image.dataset.get(RESCALE_SLOPE) == "0.010000"
    assert float(image.dataset.get(RESCALE_INTERCEPT)) == pytest.approx(0.5)
    np.testing.assert_allclose(image.mat, mat + 0.5, atol=1e-9)


def test_dicom_uint8_without_rescale_truncates(tmp_path):
    mat = np.array([[300.0, 7.0]])
    DicomUint8Handler(False, _identity(mat)).output_image(mat, tmp_path / "c")
    image = read_dicom(tmp_path / "c.dcm")
    assert image.mat.tolist() == [[255.0, 7.0]]
    assert RESCALE_SLOPE not in image.dataset


def test_dicom_float32_round_trip(tmp_path):
    mat = np.array([[0.125, -2.5], [1e3, 4.0]])
    DicomFloat32Handler().output_image(mat, tmp_path / "f32")
    image = read_dicom(tmp_path / "f32.dcm")
    assert image.dataset.get(BITS_ALLOCATED) == 32
    np.testing.assert_allclose(image.mat, mat, rtol=1e-6)


def test_dicom_float64_round_trip(tmp_path):
    mat = np.array([[np.pi, -1e-9, 7.0]])
    DicomFloat64Handler().output_image(mat, tmp_path / "f64")
    image = read_dicom(tmp_path / "f64.dcm")
    assert image.dataset.get(BITS_ALLOCATED) == 64
    np.testing.assert_array_equal(image.mat, mat)


def test_dicom_postprocessor_receives_uint8(tmp_path):
    recording = _Recording()
    DicomUint8Handler(False, recording).output_image(np.ones((2, 2)), tmp_path / "p")
    assert recording.seen == [np.dtype(np.uint8)]


def test_dicom_write_failure_raises(tmp_path):
    with pytest.raises(ImageWriteError):
        DicomFloat64Handler().output_image(np.ones((2, 2)), tmp_path / "missing" / "x")
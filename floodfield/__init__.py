"""Ray geometry, filters, collimators, spectra and TIFF/DICOM image output for X-ray flood fields."""

__version__ = "1.0.0"

__all__ = [
    "collimators",
    "dicom",
    "filters",
    "fsutil",
    "geometry",
    "images",
    "postprocessing",
    "spectrum",
]
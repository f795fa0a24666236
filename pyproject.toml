[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "floodfield"
version = "1.0.0"
description = "Building blocks for simulated X-ray flood fields: ray geometry, filters, collimators, spectra and TIFF/DICOM output"
requires-python = ">=3.11"
keywords = ["x-ray", "flood field", "flat field", "dicom", "tiff", "attenuation", "bowtie filter"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Healthcare Industry",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Medical Science Apps.",
    "Topic :: Scientific/Engineering :: Physics",
]
dependencies = [
    "numpy",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["floodfield"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

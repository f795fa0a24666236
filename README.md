# floodfield

`floodfield` is a library of building blocks for simulating X-ray flood fields. It provides:

- ray geometry: points, rays and rotations about the x axis;
- filters (slab, disc and three bowtie shapes) that report the path length a ray travels inside them;
- collimator blades that report whether they block a ray;
- an energy spectrum read from a CSV table, with per-channel attenuation coefficients per material;
- resizing and Gaussian blur of images;
- writers for TIFF and DICOM images, and a small reader for DICOM files.

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install .[test]
```

## Modules

- `floodfield.geometry`: `Point`, `Ray` (with `Ray.from_origin(end)`), `Plane`, the abstract
  `Intersectable`, and the functions `distance`, `rotate_point` and `rotate_ray`. Rotation angles are
  given in degrees.
- `floodfield.filters`: `SlabFilter`, `DistFilter`, `BowtieCylindricalFilter`, `BowtieGaussFilter` and
  `BowtieParabolicFilter`. Each one takes a material name, an optional id, its geometry and a
  rotation, and has `does_intersect(ray)` and `intersection_distance(ray)`.
- `floodfield.collimators`: `VerticalLeftCollimator`, `VerticalRightCollimator`,
  `VerticalSymmetricalCollimator`, `HorizontalTopCollimator`, `HorizontalBottomCollimator` and
  `HorizontalSymmetricalCollimator`. Each one is built from `(distance, shift)`. A blade sits at
  `distance` along the x axis and its edge is at `shift / 2`. Vertical blades test z at the blade and
  horizontal blades test y. `does_intersect(ray)` returns True when the ray is blocked.
- `floodfield.spectrum`: `Spectrum` and `Material`. `Spectrum.read_from_csv(path)` reads a
  semicolon-separated table with a header row. The `Freg` column holds the registration coefficient
  of each channel, and an `EkV` column is ignored. Every other column holds the attenuation
  coefficients of one material, and the column name is the material name.
  `material_coefficients(name)` returns those coefficients. Read errors raise `SpectrumError`.
- `floodfield.postprocessing`: `resize_linear`, `gaussian_blur` and `BasicPostprocessor`.
  `BasicPostprocessor` resizes to a target resolution and then blurs with an odd kernel of at least
  1.
- `floodfield.images`: `TiffUint8Handler`, `TiffUint16Handler`, `TiffFloat32Handler`,
  `DicomUint8Handler`, `DicomUint16Handler`, `DicomFloat32Handler` and `DicomFloat64Handler`.
  `output_image(mat, filename)` adds `.tiff` or `.dcm` when the name has no matching extension. The
  integer handlers truncate values to the type's maximum, then convert and postprocess them.
  The DICOM integer handlers can instead scale values and record a rescale slope. Write failures
  raise `ImageWriteError`.
- `floodfield.dicom`: `read_dicom_file` and `write_dicom_file` handle explicit VR little endian
  files. `read_dicom(path)` returns a float64 image with rescale slope, rescale intercept and log flag
  applied. When `path` is a directory it returns the mean of the `.dcm` files in it.
  `read_dicoms` and `read_dicoms_ordered` read every `.dcm` file in a directory, and the ordered
  variant sorts by instance number. `sort_input_files` sorts a list of files by instance number.
- `floodfield.fsutil`: small helpers for checking, creating and emptying files and directories.

## Example

```python
import numpy as np

from floodfield.collimators import VerticalSymmetricalCollimator
from floodfield.filters import SlabFilter
from floodfield.geometry import Point, Ray
from floodfield.images import TiffUint16Handler
from floodfield.postprocessing import BasicPostprocessor

ray = Ray.from_origin(Point(1000.0, 0.0, 50.0))

slab = SlabFilter("Al", None, 100.0, 2.0, 0.0)
path_length = slab.intersection_distance(ray) if slab.does_intersect(ray) else 0.0

blade = VerticalSymmetricalCollimator(200.0, 50.0)
blocked = blade.does_intersect(ray)   # False: z at the blade is 10, inside the opening

field = np.full((64, 64), 1000.0)
TiffUint16Handler(BasicPostprocessor(3, 128, 128, False)).output_image(field, "field")  # field.tiff
```

## What the package does not do

The package has no detector model and no calculator that traces every pixel to build a whole
field. To compute a field you place the rays yourself and combine the filter path lengths with the
spectrum's coefficients. The package also has no configuration file reader and no command-line
program.
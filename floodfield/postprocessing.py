"""Resizing and blurring of output images."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

_SMALL_KERNELS = {
    1: [1.0],
    3: [0.25, 0.5, 0.25],
    5: [0.0625, 0.25, 0.375, 0.25, 0.0625],
    7: [0.03125, 0.109375, 0.21875, 0.28125, 0.21875, 0.109375, 0.03125],
}


def _restore_dtype(values: np.ndarray, dtype: np.dtype) -> np.ndarray:
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        return np.clip(np.rint(values), info.min, info.max).astype(dtype)
    return values.astype(dtype)


def _axis_weights(n_src: int, n_dst: int):
    pos = (np.arange(n_dst) + 0.5) * (n_src / n_dst) - 0.5
    pos = np.clip(pos, 0, None)
    i0 = np.minimum(np.floor(pos).astype(int), n_src - 1)
    i1 = np.minimum(i0 + 1, n_src - 1)
    return i0, i1, pos - i0


def resize_linear(mat: np.ndarray, width: int, height: int) -> np.ndarray:
    """Bilinear resize to ``width`` x ``height`` with pixel-centre alignment."""
    src = np.asarray(mat, dtype=np.float64)
    r0, r1, rw = _axis_weights(src.shape[0], height)
    rows = src[r0] * (1 - rw)[:, None] + src[r1] * rw[:, None]
    c0, c1, cw = _axis_weights(src.shape[1], width)
    out = rows[:, c0] * (1 - cw) + rows[:, c1] * cw
    return _restore_dtype(out, np.asarray(mat).dtype)


def _kernel(ksize: int) -> np.ndarray:
    if ksize in _SMALL_KERNELS:
        return np.array(_SMALL_KERNELS[ksize])
    sigma = 0.3 * ((ksize - 1) * 0.5 - 1) + 0.8
    offsets = np.arange(ksize) - (ksize - 1) / 2
    kernel = np.exp(-(offsets ** 2) / (2 * sigma * sigma))
    return kernel / kernel.sum()


def _convolve_axis(values: np.ndarray, kernel: np.ndarray, axis: int) -> np.ndarray:
    pad = len(kernel) // 2
    widths = [(0, 0), (0, 0)]
    widths[axis] = (pad, pad)
    padded = np.pad(values, widths, mode="reflect")
    n = values.shape[axis]
    return sum(
        weight * np.take(padded, range(i, i + n), axis=axis)
        for i, weight in enumerate(kernel)
    )


def gaussian_blur(mat: np.ndarray, ksize: int) -> np.ndarray:
    """Gaussian blur with an odd square kernel and reflected borders."""
    if ksize <= 0 or ksize % 2 == 0:
        raise ValueError("Kernel size must be a positive odd number")
    src = np.asarray(mat)
    kernel = _kernel(ksize)
    values = src.astype(np.float64)
    values = _convolve_axis(values, kernel, 0)
    values = _convolve_axis(values, kernel, 1)
    return _restore_dtype(values, src.dtype)


class Postprocessor(ABC):
    """Transforms an image before it is written."""

    @abstractmethod
    def process(self, mat: np.ndarray) -> np.ndarray:
        """Return the processed image."""


class BasicPostprocessor(Postprocessor):
    """Resizes to a target resolution and applies a Gaussian blur."""

    def __init__(self, blur_radius: int, target_width: int, target_height: int,
                 invert: bool) -> None:
        self.blur_radius = blur_radius
        self.target_width = target_width
        self.target_height = target_height
        self.invert = invert

    def process(self, mat: np.ndarray) -> np.ndarray:
        resized = resize_linear(mat, int(self.target_width), int(self.target_height))
        if self.blur_radius <= 0:
            self.blur_radius = 1
        if self.blur_radius % 2 == 0:
            self.blur_radius += 1
        return gaussian_blur(resized, self.blur_radius)
# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements image decoding and encoding.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Tuple

import pathlib

import numpy as np
from PIL import Image


class ImageSource:
    """Read-only RGB raster the mesh is fitted to.

    Attributes:
        array: ``(height, width, 3)`` uint8 array of the image.
    """

    def __init__(self, array: np.ndarray):
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] != 3:
            raise ValueError(f"Expected a (height, width, 3) RGB array, got shape {array.shape}.")
        self.array: np.ndarray = np.ascontiguousarray(array, dtype=np.uint8)

    def __repr__(self) -> str:
        width, height = self.dimensions()
        return f"{self.__class__.__name__}(width={width},height={height})"

    @classmethod
    def open(cls, path: str | pathlib.Path) -> "ImageSource":
        """Decodes an image file into RGB.

        Raises:
            FileNotFoundError: If the file does not exist.
            OSError: If Pillow cannot decode the file.
        """
        with Image.open(path) as img:
            return cls(np.asarray(img.convert("RGB")))

    def dimensions(self) -> Tuple[int, int]:
        """Returns ``(width, height)``."""
        return self.array.shape[1], self.array.shape[0]

    def get_pixel(self, x: int, y: int) -> Tuple[int, int, int]:
        r, g, b = self.array[y, x]
        return int(r), int(g), int(b)

    def pixels(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Returns the colors at the given coordinates as a ``(k, 3)`` float array."""
        return self.array[ys, xs].astype(np.float64)


class ImageSink:
    """Writes rendered RGB buffers to image files."""

    def save(
        self, path: str | pathlib.Path, width: int, height: int, buffer: np.ndarray
    ) -> None:
        """Encodes a buffer, the format being chosen from the file extension.

        Args:
            path: Destination file.
            width: Image width in pixels.
            height: Image height in pixels.
            buffer: ``(height, width, 3)`` uint8 buffer.

        Raises:
            ValueError: If the buffer shape does not match or the extension is unknown.
            OSError: If the file cannot be written.
        """
        buffer = np.asarray(buffer, dtype=np.uint8)
        if buffer.shape != (height, width, 3):
            raise ValueError(
                f"Buffer of shape {buffer.shape} does not match a {width}x{height} RGB image."
            )
        Image.fromarray(buffer).save(path)

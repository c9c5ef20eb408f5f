# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements tests for image decoding and encoding.
#
# ===--------------------------------------------------------------------------------------===#

import numpy as np
import pytest
from PIL import Image

from polyevolve.image import ImageSink, ImageSource


def _gradient(width=5, height=3) -> np.ndarray:
    array = np.zeros((height, width, 3), dtype=np.uint8)
    array[..., 0] = np.arange(width)[None, :] * 10
    array[..., 1] = np.arange(height)[:, None] * 20
    return array


def test_open_converts_to_rgb(tmp_path):
    path = tmp_path / "gray.png"
    Image.fromarray(np.full((3, 5), 77, dtype=np.uint8)).save(path)

    image = ImageSource.open(path)

    assert image.dimensions() == (5, 3)
    assert image.get_pixel(4, 2) == (77, 77, 77)


def test_pixels_are_addressed_by_x_then_y():
    image = ImageSource(_gradient())

    assert image.get_pixel(3, 1) == (30, 20, 0)
    colors = image.pixels(np.array([0, 3]), np.array([2, 1]))
    assert colors.dtype == np.float64
    assert colors.tolist() == [[0.0, 40.0, 0.0], [30.0, 20.0, 0.0]]


def test_source_rejects_non_rgb_arrays():
    with pytest.raises(ValueError):
        ImageSource(np.zeros((3, 5), dtype=np.uint8))


def test_sink_writes_the_buffer(tmp_path):
    path = tmp_path / "out.png"

    ImageSink().save(path, 5, 3, _gradient())

    with Image.open(path) as img:
        np.testing.assert_array_equal(np.asarray(img.convert("RGB")), _gradient())


def test_sink_reports_bad_buffers_and_paths(tmp_path):
    with pytest.raises(ValueError):
        ImageSink().save(tmp_path / "out.png", 4, 3, _gradient())
    with pytest.raises(OSError):
        ImageSink().save(tmp_path / "missing" / "out.png", 5, 3, _gradient())


def test_missing_file_cannot_be_opened(tmp_path):
    with pytest.raises(FileNotFoundError):
        ImageSource.open(tmp_path / "missing.png")

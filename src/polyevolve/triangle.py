# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements triangle geometry: containment tests and pixel enumeration.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Iterator, Optional, Tuple

import math

import numpy as np

from polyevolve.point import Point


class Triangle:
    """Triangle geometry with a containment predicate tuned for pixel scanning.

    The containment test runs in a fixed order: bounding-box fast reject, degenerate
    axis cases (two vertices on ``x = 0`` or ``y = 0``), exact vertex match and finally
    barycentric coordinates. Changing the order changes which boundary pixels are
    classified as contained.

    Attributes:
        vertices: The three vertices, in the order they were given.
        max_x: Largest vertex x coordinate.
        max_y: Largest vertex y coordinate.
        on_x_axis: True if at least two vertices lie on the ``x = 0`` line.
        on_y_axis: True if at least two vertices lie on the ``y = 0`` line.
    """

    def __init__(self, a: Point, b: Point, c: Point):
        """Precomputes the bounding box, degeneracy flags and barycentric terms.

        Args:
            a: First vertex.
            b: Second vertex.
            c: Third vertex.
        """
        self.vertices: Tuple[Point, Point, Point] = (a, b, c)
        self.min_x: float = min(a.x, b.x, c.x)
        self.min_y: float = min(a.y, b.y, c.y)
        self.max_x: float = max(a.x, b.x, c.x)
        self.max_y: float = max(a.y, b.y, c.y)

        x_axis_ys = [v.y for v in self.vertices if v.x == 0.0]
        y_axis_xs = [v.x for v in self.vertices if v.y == 0.0]
        self.on_x_axis: bool = len(x_axis_ys) >= 2
        self.on_y_axis: bool = len(y_axis_xs) >= 2
        self._x_axis_span: Optional[Tuple[float, float]] = (
            (min(x_axis_ys), max(x_axis_ys)) if self.on_x_axis else None
        )
        self._y_axis_span: Optional[Tuple[float, float]] = (
            (min(y_axis_xs), max(y_axis_xs)) if self.on_y_axis else None
        )

        # v0 = c - a, v1 = b - a
        self._v0: Tuple[float, float] = (c.x - a.x, c.y - a.y)
        self._v1: Tuple[float, float] = (b.x - a.x, b.y - a.y)
        self._d00: float = _dot(self._v0, self._v0)
        self._d01: float = _dot(self._v0, self._v1)
        self._d11: float = _dot(self._v1, self._v1)
        denom: float = self._d00 * self._d11 - self._d01 * self._d01
        self._inv_denom: Optional[float] = 1.0 / denom if denom != 0.0 else None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({', '.join(str(v.values()) for v in self.vertices)})"

    def bounding_box(self) -> Tuple[float, float, float, float]:
        """Returns ``(min_x, min_y, max_x, max_y)``."""
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def contains(self, p: Point) -> bool:
        """Checks whether a point lies inside or on the boundary of the triangle.

        Args:
            p: The query point.

        Returns:
            True if the point is classified as contained.
        """
        x, y = p.x, p.y

        if x > self.max_x and y > self.max_y:
            return False

        if self.on_x_axis and x == 0.0:
            lo, hi = self._x_axis_span
            if lo <= y <= hi:
                return True

        if self.on_y_axis and y == 0.0:
            lo, hi = self._y_axis_span
            if lo <= x <= hi:
                return True

        for v in self.vertices:
            if x == v.x and y == v.y:
                return True

        if self._inv_denom is None:
            return False

        a = self.vertices[0]
        v2 = (x - a.x, y - a.y)
        d02 = _dot(self._v0, v2)
        d12 = _dot(self._v1, v2)
        u = (self._d11 * d02 - self._d01 * d12) * self._inv_denom
        v = (self._d00 * d12 - self._d01 * d02) * self._inv_denom
        return (u >= 0.0) and (v >= 0.0) and (u + v <= 1.0)

    def contains_mask(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Vectorised form of :meth:`contains` over arrays of coordinates.

        Produces exactly the same classification as calling :meth:`contains` on
        every ``(xs[i], ys[i])`` pair.

        Args:
            xs: Array of x coordinates.
            ys: Array of y coordinates, same shape as ``xs``.

        Returns:
            Boolean array with the shape of ``xs``.
        """
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)

        reject: np.ndarray = (xs > self.max_x) & (ys > self.max_y)
        hit: np.ndarray = np.zeros(xs.shape, dtype=bool)

        if self.on_x_axis:
            lo, hi = self._x_axis_span
            hit |= (xs == 0.0) & (ys >= lo) & (ys <= hi)
        if self.on_y_axis:
            lo, hi = self._y_axis_span
            hit |= (ys == 0.0) & (xs >= lo) & (xs <= hi)

        for v in self.vertices:
            hit |= (xs == v.x) & (ys == v.y)

        if self._inv_denom is not None:
            a = self.vertices[0]
            v2x: np.ndarray = xs - a.x
            v2y: np.ndarray = ys - a.y
            d02: np.ndarray = self._v0[0] * v2x + self._v0[1] * v2y
            d12: np.ndarray = self._v1[0] * v2x + self._v1[1] * v2y
            u: np.ndarray = (self._d11 * d02 - self._d01 * d12) * self._inv_denom
            v: np.ndarray = (self._d00 * d12 - self._d01 * d02) * self._inv_denom
            hit |= (u >= 0.0) & (v >= 0.0) & (u + v <= 1.0)

        return hit & ~reject

    def _pixel_box(self, width: int, height: int) -> Tuple[int, int, int, int]:
        min_x, min_y, max_x, max_y = self.bounding_box()
        return (
            max(0, math.floor(min_x)),
            max(0, math.floor(min_y)),
            min(width, math.ceil(max_x)),
            min(height, math.ceil(max_y)),
        )

    def pixel_coords(self, width: int, height: int) -> Tuple[np.ndarray, np.ndarray]:
        """Enumerates the integer pixel coordinates covered by the triangle.

        Pixels are scanned over the triangle's bounding box, clipped to the image,
        in row-major order (y outer, x inner).

        Args:
            width: Image width in pixels.
            height: Image height in pixels.

        Returns:
            A pair ``(xs, ys)`` of integer arrays of the contained pixels.
        """
        left, top, right, bottom = self._pixel_box(width, height)
        if right <= left or bottom <= top:
            empty: np.ndarray = np.zeros(0, dtype=np.intp)
            return empty, empty.copy()

        ys, xs = np.mgrid[top:bottom, left:right]
        xs = xs.ravel()
        ys = ys.ravel()
        mask: np.ndarray = self.contains_mask(xs, ys)
        return xs[mask], ys[mask]

    def iter_points(self, width: int, height: int) -> Iterator[Point]:
        """Yields contained pixel positions one by one, in row-major order.

        Scalar counterpart of :meth:`pixel_coords`.

        Args:
            width: Image width in pixels.
            height: Image height in pixels.

        Yields:
            Contained pixel positions as points with integral coordinates.
        """
        left, top, right, bottom = self._pixel_box(width, height)
        for y in range(top, bottom):
            for x in range(left, right):
                point = Point(float(x), float(y))
                if self.contains(point):
                    yield point


def _dot(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    return a[0] * b[0] + a[1] * b[1]

# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the 2D point value type and its mutation operator.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Tuple

from dataclasses import dataclass
import random


@dataclass(frozen=True)
class Point:
    """Immutable 2D coordinate in image space.

    Attributes:
        x: Horizontal coordinate, 0 at the left edge of the image.
        y: Vertical coordinate, 0 at the top edge of the image.
    """

    x: float
    y: float

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def __mul__(self, factor: float) -> "Point":
        return Point(self.x * factor, self.y * factor)

    def values(self) -> Tuple[float, float]:
        """Returns the coordinates as an ``(x, y)`` tuple."""
        return (self.x, self.y)

    def mutate(self, delta: "Point", bounds: Tuple[float, float]) -> "Point":
        """Returns this point displaced by ``delta`` and clamped to the image box.

        An axis whose coordinate is exactly 0 or exactly at the bound is pinned and
        left untouched, which keeps the convex hull of a point set anchored to the
        image corners and edges.

        Args:
            delta: Displacement to apply.
            bounds: ``(width, height)`` of the image; coordinates are clamped to
                ``[0, width] x [0, height]``.

        Returns:
            The displaced point.
        """
        width, height = bounds
        return Point(_shift(self.x, delta.x, width), _shift(self.y, delta.y, height))


def _shift(value: float, delta: float, bound: float) -> float:
    if value == 0.0 or value == bound:
        return value
    return max(0.0, min(bound, value + delta))


def gaussian_delta(random_state: random.Random, stddev: float) -> Point:
    """Draws a displacement with independent zero-mean Gaussian components.

    Args:
        random_state: Source of randomness.
        stddev: Standard deviation of each component, in pixels.

    Returns:
        The sampled displacement.
    """
    return Point(random_state.gauss(0.0, stddev), random_state.gauss(0.0, stddev))

# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the triangulation interface and its Delaunay implementation.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Optional

from abc import ABC, abstractmethod
import logging

import numpy as np
from scipy.spatial import Delaunay, QhullError

from polyevolve.errors import DuplicatePointError, TriangulationError


def check_unique_points(points: np.ndarray) -> None:
    """Checks that an ``(n, 2)`` point array has no repeated coordinates.

    Raises:
        ValueError: If the array is not of shape ``(n, 2)``.
        DuplicatePointError: If two rows are equal.
    """
    if points.ndim != 2 or points.shape[1] != 2:
        raise ValueError(f"Expected an (n, 2) point array, got shape {points.shape}.")
    unique, counts = np.unique(points, axis=0, return_counts=True)
    if np.any(counts > 1):
        duplicates = unique[counts > 1]
        raise DuplicatePointError(
            f"{len(duplicates)} duplicate point(s) handed to the triangulator: "
            f"{duplicates[:5].tolist()}"
        )


class Triangulator(ABC):
    """Tessellates the convex hull of a point set into triangles."""

    @abstractmethod
    def triangulate(self, points: np.ndarray) -> np.ndarray:
        """Triangulates a set of unique points.

        Args:
            points: ``(n, 2)`` array of unique coordinates.

        Returns:
            ``(m, 3)`` integer array; every row holds the indices of the three input
            points forming one triangle.
        """
        raise NotImplementedError


class DelaunayTriangulator(Triangulator):
    """Delaunay triangulation backed by Qhull through :mod:`scipy.spatial`."""

    def __init__(
        self, qhull_options: Optional[str] = None, logger: Optional[logging.Logger] = None
    ):
        self.qhull_options: Optional[str] = qhull_options
        self.logger: logging.Logger = logger if logger is not None else logging.getLogger(__name__)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(qhull_options={self.qhull_options})"

    def triangulate(self, points: np.ndarray) -> np.ndarray:
        points = np.asarray(points, dtype=np.float64)
        check_unique_points(points)
        if len(points) < 3:
            raise TriangulationError(f"At least 3 points are required, got {len(points)}.")

        try:
            delaunay = Delaunay(points, qhull_options=self.qhull_options)
        except (QhullError, ValueError) as err:
            raise TriangulationError(f"Qhull failed on {len(points)} points: {err}") from err

        simplices: np.ndarray = delaunay.simplices.astype(np.intp)
        if simplices.shape[0] == 0:
            raise TriangulationError(f"Triangulation of {len(points)} points is empty.")

        # every input point must be a vertex of at least one triangle
        missing: np.ndarray = np.setdiff1d(np.arange(len(points)), simplices)
        if len(missing):
            raise TriangulationError(
                f"{len(missing)} of {len(points)} points were left out of the triangulation: "
                f"{points[missing[:5]].tolist()}"
            )
        self.logger.debug(f"Triangulated {len(points)} points into {len(simplices)} triangles.")
        return simplices

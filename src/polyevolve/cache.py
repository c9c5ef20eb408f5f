# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the memoizing cache of face evaluations.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Callable, Dict, Tuple

from polyevolve.pixel_group import PixelGroup
from polyevolve.point import Point

CacheKey = Tuple[Tuple[float, float], Tuple[float, float], Tuple[float, float]]


class FitnessCache:
    """Memoizes face evaluations by their unordered vertex triple.

    The same triangle reappears across the rounds of a generation (unchanged members,
    reverted candidates, the merged round), so each distinct triangle is evaluated at
    most once per cache lifetime.
    """

    def __init__(self):
        self.store: Dict[CacheKey, PixelGroup] = {}
        self.hits: int = 0
        self.misses: int = 0

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}"
            "("
            f"size={len(self.store)},"
            f"hits={self.hits},"
            f"misses={self.misses}"
            ")"
        )

    def __len__(self) -> int:
        return len(self.store)

    @staticmethod
    def key(p1: Point, p2: Point, p3: Point) -> CacheKey:
        """Returns the canonical key of a vertex triple.

        Vertices are ordered by ascending x, ties broken by y, so every permutation
        of the same three points maps to the same key.
        """
        return tuple(sorted((p1.values(), p2.values(), p3.values())))

    def get_or_compute(
        self, p1: Point, p2: Point, p3: Point, compute_fn: Callable[[], PixelGroup]
    ) -> PixelGroup:
        """Returns the cached evaluation of a triangle, computing it on first use.

        Args:
            p1: First vertex.
            p2: Second vertex.
            p3: Third vertex.
            compute_fn: Evaluates the triangle; only called on a cache miss.

        Returns:
            The evaluation of the triangle.
        """
        key: CacheKey = self.key(p1, p2, p3)
        group = self.store.get(key, None)
        if group is not None:
            self.hits += 1
            return group

        self.misses += 1
        group = compute_fn()
        self.store[key] = group
        return group

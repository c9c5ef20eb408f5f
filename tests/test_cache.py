# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements tests for the face evaluation cache.
#
# ===--------------------------------------------------------------------------------------===#

from itertools import permutations

from polyevolve.cache import FitnessCache
from polyevolve.pixel_group import PixelGroup
from polyevolve.point import Point

P1, P2, P3 = Point(0.0, 0.0), Point(4.0, 1.0), Point(4.0, 0.5)


class CountingEvaluation:
    def __init__(self, fitness: float = 1.0):
        self.calls = 0
        self.fitness = fitness

    def __call__(self) -> PixelGroup:
        self.calls += 1
        return PixelGroup(color=(1, 2, 3), fitness=self.fitness)


def test_key_is_invariant_under_permutation():
    keys = {FitnessCache.key(*perm) for perm in permutations((P1, P2, P3))}

    assert keys == {((0.0, 0.0), (4.0, 0.5), (4.0, 1.0))}


def test_every_permutation_is_computed_once():
    cache = FitnessCache()
    evaluation = CountingEvaluation()

    results = [cache.get_or_compute(*perm, evaluation) for perm in permutations((P1, P2, P3))]

    assert evaluation.calls == 1
    assert all(result is results[0] for result in results)
    assert cache.misses == 1
    assert cache.hits == 5
    assert len(cache) == 1


def test_distinct_triangles_are_computed_separately():
    cache = FitnessCache()
    first = CountingEvaluation(fitness=1.0)
    second = CountingEvaluation(fitness=2.0)

    cache.get_or_compute(P1, P2, P3, first)
    group = cache.get_or_compute(P1, P2, Point(5.0, 5.0), second)

    assert first.calls == 1
    assert second.calls == 1
    assert group.fitness == 2.0
    assert len(cache) == 2

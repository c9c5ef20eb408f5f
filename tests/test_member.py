# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements tests for members and their per-round variants.
#
# ===--------------------------------------------------------------------------------------===#

import random

import pytest

from polyevolve.config import MutationConfig
from polyevolve.errors import InvariantError, RoundIndexError
from polyevolve.member import Member, Variant
from polyevolve.point import Point

BOUNDS = (100.0, 100.0)


def _member_with_candidates(base_fitness, *candidates) -> Member:
    """Builds a member whose rounds hold the given (delta, fitness) candidates."""
    member = Member(id=0, point=Point(50.0, 50.0), bounds=BOUNDS)
    member.add_fitness(0, base_fitness)
    for round_idx, (delta, fitness) in enumerate(candidates, start=1):
        point = member.point.mutate(delta, BOUNDS) if delta is not None else member.point
        member.variants.append(Variant(point=point, delta=delta))
        member.add_fitness(round_idx, fitness)
    return member


def test_new_member_holds_only_its_base_round():
    member = Member(id=3, point=Point(1.0, 2.0), bounds=BOUNDS)

    assert member.num_rounds == 1
    assert member.point_at(0) == Point(1.0, 2.0)
    assert member.fitness == 0.0
    assert not member.is_merged


def test_add_fitness_accumulates_per_round():
    member = _member_with_candidates(0.0, (Point(1.0, 1.0), 0.0))
    member.add_fitness(0, 2.0)
    member.add_fitness(0, 3.0)
    member.add_fitness(1, 7.0)

    assert member.fitness_at(0) == 5.0
    assert member.fitness_at(1) == 7.0


def test_out_of_range_round_is_an_invariant_violation():
    member = Member(id=0, point=Point(1.0, 2.0), bounds=BOUNDS)

    with pytest.raises(RoundIndexError):
        member.add_fitness(1, 1.0)
    with pytest.raises(RoundIndexError):
        member.point_at(-1)
    with pytest.raises(InvariantError):
        member.fitness_at(5)


def test_mutate_follows_the_mutation_probability():
    member = Member(id=0, point=Point(50.0, 50.0), bounds=BOUNDS)
    random_state = random.Random(0)

    kept = member.mutate(random_state, MutationConfig(probability=0.0, stddev=10.0))
    moved = member.mutate(random_state, MutationConfig(probability=1.0, stddev=10.0))

    assert kept.delta is None and kept.point == member.point
    assert moved.is_mutation
    assert moved.point == member.point.mutate(moved.delta, BOUNDS)
    assert member.num_rounds == 3


def test_merge_weights_beneficial_deltas_by_fitness_share():
    member = _member_with_candidates(5.0, (Point(4.0, 0.0), 10.0), (Point(0.0, 8.0), 30.0))

    merged = member.merge()

    # 0.25 * (4, 0) + 0.75 * (0, 8)
    assert merged.point == Point(51.0, 56.0)
    assert merged.merged
    assert member.is_merged
    assert member.point_at(3) == Point(51.0, 56.0)


def test_merge_ignores_candidates_not_beating_the_base():
    member = _member_with_candidates(
        20.0,
        (Point(4.0, 0.0), 10.0),
        (Point(0.0, 8.0), 20.0),
        (None, 100.0),
    )

    merged = member.merge()

    assert member.beneficial_variants() == []
    assert merged.point == member.point


def test_merged_member_cannot_change():
    member = _member_with_candidates(0.0, (Point(4.0, 0.0), 1.0))
    member.merge()

    with pytest.raises(InvariantError):
        member.merge()
    with pytest.raises(InvariantError):
        member.mutate(random.Random(0), MutationConfig())


def test_revert_restores_the_base_point():
    member = _member_with_candidates(0.0, (Point(4.0, 0.0), 3.0))

    reverted = member.revert(1)

    assert reverted.point == member.point
    assert not reverted.is_mutation
    assert member.fitness_at(1) == 0.0
    with pytest.raises(RoundIndexError):
        member.revert(0)

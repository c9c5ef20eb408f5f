# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements tests for points and their mutation operator.
#
# ===--------------------------------------------------------------------------------------===#

import random

from polyevolve.point import Point, gaussian_delta

BOUNDS = (100.0, 80.0)


def test_point_arithmetic():
    a = Point(3.0, 4.0)
    b = Point(1.0, 2.0)

    assert a - b == Point(2.0, 2.0)
    assert a * 0.5 == Point(1.5, 2.0)
    assert a.values() == (3.0, 4.0)


def test_mutate_clamps_to_image_box():
    assert Point(50.0, 40.0).mutate(Point(500.0, -500.0), BOUNDS) == Point(100.0, 0.0)
    assert Point(50.0, 40.0).mutate(Point(-3.0, 2.5), BOUNDS) == Point(47.0, 42.5)


def test_mutate_pins_axes_at_zero_or_bound():
    assert Point(0.0, 80.0).mutate(Point(5.0, -5.0), BOUNDS) == Point(0.0, 80.0)
    assert Point(100.0, 0.0).mutate(Point(-5.0, 5.0), BOUNDS) == Point(100.0, 0.0)
    # only the pinned axis stays put
    assert Point(0.0, 40.0).mutate(Point(5.0, 5.0), BOUNDS) == Point(0.0, 45.0)


def test_random_mutations_stay_in_bounds():
    random_state = random.Random(7)
    for _ in range(500):
        base = Point(random_state.uniform(0.0, 100.0), random_state.uniform(0.0, 80.0))
        moved = base.mutate(gaussian_delta(random_state, 60.0), BOUNDS)
        assert 0.0 <= moved.x <= 100.0
        assert 0.0 <= moved.y <= 80.0


def test_gaussian_delta_is_deterministic_with_seed():
    assert gaussian_delta(random.Random(3), 10.0) == gaussian_delta(random.Random(3), 10.0)
    assert gaussian_delta(random.Random(3), 0.0) == Point(0.0, 0.0)

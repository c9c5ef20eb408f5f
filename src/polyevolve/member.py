# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the evolving mesh vertex (member) and its per-round variants.
#
# ===--------------------------------------------------------------------------------------===#

from typing import List, Optional, Tuple

from dataclasses import dataclass, field
import random

from polyevolve.config import MutationConfig
from polyevolve.errors import InvariantError, RoundIndexError
from polyevolve.point import Point, gaussian_delta


@dataclass
class Variant:
    """The position of a member in one round of a generation.

    Attributes:
        point: Position used for the round's triangulation.
        delta: Displacement that produced the position, None if the member kept its
            base point this round.
        merged: True for the variant aggregating the beneficial mutations.
        fitness: Fitness accumulated from the faces touching this position.
    """

    point: Point
    delta: Optional[Point] = None
    merged: bool = False
    fitness: float = 0.0

    @property
    def is_mutation(self) -> bool:
        return self.delta is not None and not self.merged


@dataclass
class Member:
    """One evolving vertex of the mesh.

    Round 0 holds the base point, rounds ``1..N`` hold one variant per mutation
    round (a candidate or the unchanged base) and round ``N + 1`` holds the merged
    base once :meth:`merge` has run.

    Attributes:
        id: Identity of the member, stable across all rounds of a generation.
        point: Base point of the member.
        bounds: ``(width, height)`` of the image.
        variants: Per-round variants, indexed by round.
    """

    id: int
    point: Point
    bounds: Tuple[float, float]
    variants: List[Variant] = field(default_factory=list)

    def __post_init__(self):
        if not self.variants:
            self.variants.append(Variant(point=self.point))

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}"
            "("
            f"id={self.id},"
            f"point={self.point.values()},"
            f"rounds={self.num_rounds},"
            f"fitness={self.fitness:.8f}"
            ")"
        )

    @property
    def num_rounds(self) -> int:
        return len(self.variants)

    @property
    def fitness(self) -> float:
        """Fitness accumulated by the base point."""
        return self.variants[0].fitness

    @property
    def is_merged(self) -> bool:
        return self.variants[-1].merged

    def _variant(self, round_idx: int) -> Variant:
        if not 0 <= round_idx < len(self.variants):
            raise RoundIndexError(
                f"Member {self.id} has {len(self.variants)} rounds, got round {round_idx}."
            )
        return self.variants[round_idx]

    def point_at(self, round_idx: int) -> Point:
        """Returns the member's position in a round."""
        return self._variant(round_idx).point

    def fitness_at(self, round_idx: int) -> float:
        """Returns the fitness accumulated in a round."""
        return self._variant(round_idx).fitness

    def add_fitness(self, round_idx: int, amount: float) -> None:
        """Accumulates face fitness onto the variant of a round.

        Raises:
            RoundIndexError: If the member has no such round.
        """
        self._variant(round_idx).fitness += amount

    def mutate(self, random_state: random.Random, config: MutationConfig) -> Variant:
        """Appends the variant of a new mutation round.

        With probability ``config.probability`` the variant is the base point moved
        by a Gaussian delta; otherwise it is the unchanged base point.

        Args:
            random_state: Source of randomness.
            config: Mutation parameters.

        Returns:
            The appended variant.
        """
        if self.is_merged:
            raise InvariantError(f"Member {self.id} was already merged.")

        if random_state.random() < config.probability:
            delta: Point = gaussian_delta(random_state, config.stddev)
            variant = Variant(point=self.point.mutate(delta, self.bounds), delta=delta)
        else:
            variant = Variant(point=self.point)
        self.variants.append(variant)
        return variant

    def revert(self, round_idx: int) -> Variant:
        """Replaces the variant of a round with the unchanged base point.

        Used when a candidate collides with another point of the same round.

        Args:
            round_idx: Round to revert, must be at least 1.

        Returns:
            The replacement variant.
        """
        if round_idx == 0:
            raise RoundIndexError(f"Member {self.id} cannot revert its base round.")
        old: Variant = self._variant(round_idx)
        variant = Variant(point=self.point, merged=old.merged)
        self.variants[round_idx] = variant
        return variant

    def beneficial_variants(self) -> List[Variant]:
        """Returns the mutated variants that outscored the base point."""
        base_fitness: float = self.fitness
        return [v for v in self.variants[1:] if v.is_mutation and v.fitness > base_fitness]

    def merge(self) -> Variant:
        """Appends the merged variant that aggregates the beneficial mutations.

        The base point is nudged by every beneficial delta, weighted by the share of
        that mutation's fitness in the total fitness of all beneficial mutations.
        Without beneficial mutations the merged point is the base point.

        Returns:
            The appended merged variant.
        """
        if self.is_merged:
            raise InvariantError(f"Member {self.id} was already merged.")

        beneficial: List[Variant] = self.beneficial_variants()
        total: float = sum(v.fitness for v in beneficial)

        aggregate: Point = self.point
        for variant in beneficial:
            aggregate = aggregate.mutate(variant.delta * (variant.fitness / total), self.bounds)

        merged = Variant(point=aggregate, delta=aggregate - self.point, merged=True)
        self.variants.append(merged)
        return merged

# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements a generation of the mesh optimisation: mutation rounds, merging,
# selection of the best points and rendering.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Dict, List, Optional, Sequence, Set, Tuple

from dataclasses import dataclass
from enum import Enum
import logging
import random

import numpy as np

from polyevolve.cache import FitnessCache
from polyevolve.config import RunConfig
from polyevolve.errors import DuplicatePointError, InvariantError
from polyevolve.face import Face, rasterize
from polyevolve.image import ImageSource
from polyevolve.member import Member
from polyevolve.point import Point
from polyevolve.triangulation import Triangulator, check_unique_points


def grid_points(width: float, height: float, segments: int) -> List[Point]:
    """Returns a ``segments x segments`` grid spanning ``[0, width] x [0, height]``.

    The grid includes the four corners and points on every edge of the image, which
    stay pinned by mutation.
    """
    xs: np.ndarray = np.linspace(0.0, width, segments)
    ys: np.ndarray = np.linspace(0.0, height, segments)
    return [Point(float(x), float(y)) for x in xs for y in ys]


def points_to_array(points: Sequence[Point]) -> np.ndarray:
    return np.array([p.values() for p in points], dtype=np.float64).reshape(-1, 2)


@dataclass
class Population:
    """The faces of one triangulation and the points they were built from.

    Attributes:
        faces: Scored faces of the triangulation.
        points: ``(n, 2)`` array of the triangulated points; row ``i`` belongs to
            member ``i``.
        round: Round of the generation the triangulation belongs to.
    """

    faces: List[Face]
    points: np.ndarray
    round: int = 0

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}"
            "("
            f"round={self.round},"
            f"num_points={len(self.points)},"
            f"num_faces={len(self.faces)},"
            f"total_fitness={self.total_fitness:.8f}"
            ")"
        )

    @property
    def total_fitness(self) -> float:
        return float(sum(face.fitness for face in self.faces))

    @property
    def mean_fitness(self) -> float:
        if not self.faces:
            return 0.0
        return self.total_fitness / len(self.faces)

    def point_list(self) -> List[Point]:
        return [Point(float(x), float(y)) for x, y in self.points]


class GenerationState(Enum):
    SEEDED = "seeded"
    MUTATING = "mutating"
    MERGING = "merging"
    SCORED = "scored"


class Generation:
    """One outer iteration of the mesh optimisation.

    A generation owns the arena of members built from its seed points, indexed by
    member id. Round 0 (the seed points) is triangulated and scored on construction.
    :meth:`mutate` then runs the mutation rounds and the merge round, each adding
    one :class:`Population` to :attr:`populations`. All rounds share one
    :class:`FitnessCache`.

    Attributes:
        members: Member arena, ``members[i].id == i``.
        populations: Scored populations, indexed by round.
        cache: Memo of face evaluations shared by every round.
        state: Position in the ``SEEDED -> MUTATING -> MERGING -> SCORED`` lifecycle.
        num_reverts: Number of candidate positions reverted to their base point
            because they collided with another point of the same round.
    """

    def __init__(
        self,
        points: Sequence[Point],
        image: ImageSource,
        config: RunConfig,
        triangulator: Triangulator,
        random_state: random.Random,
        cache: Optional[FitnessCache] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Creates the members and scores round 0.

        Args:
            points: Unique seed points, one member each.
            image: Image the mesh is fitted to.
            config: Run configuration.
            triangulator: Triangulation backend.
            random_state: Source of randomness for mutations.
            cache: Memo of face evaluations; a fresh cache is created if None.
            logger: Logger; defaults to the module logger.

        Raises:
            DuplicatePointError: If two seed points are equal.
        """
        self.image: ImageSource = image
        self.config: RunConfig = config
        self.triangulator: Triangulator = triangulator
        self.random_state: random.Random = random_state
        self.cache: FitnessCache = cache if cache is not None else FitnessCache()
        self.logger: logging.Logger = logger if logger is not None else logging.getLogger(__name__)

        width, height = image.dimensions()
        self.bounds: Tuple[float, float] = (float(width), float(height))

        check_unique_points(points_to_array(points))
        self.members: List[Member] = [
            Member(id=i, point=p, bounds=self.bounds) for i, p in enumerate(points)
        ]
        self.populations: List[Population] = []
        self.num_reverts: int = 0
        self.state: GenerationState = GenerationState.SEEDED

        self._score_round(0)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}"
            "("
            f"num_members={len(self.members)},"
            f"num_rounds={len(self.populations)},"
            f"state={self.state.value},"
            f"cache={self.cache}"
            ")"
        )

    def _round_points(self, round_idx: int) -> np.ndarray:
        """Collects the members' positions of a round, reverting colliding candidates.

        Every candidate position that coincides with another position of the round
        is reverted to its member's base point, until all positions are unique.
        """
        while True:
            owners: Dict[Tuple[float, float], int] = {}
            colliding: Set[int] = set()
            for member in self.members:
                coords = member.point_at(round_idx).values()
                if coords in owners:
                    colliding.add(owners[coords])
                    colliding.add(member.id)
                else:
                    owners[coords] = member.id

            if not colliding:
                return points_to_array([m.point_at(round_idx) for m in self.members])

            to_revert: List[int] = [
                i for i in sorted(colliding)
                if self.members[i].point_at(round_idx) != self.members[i].point
            ]
            if not to_revert:
                raise DuplicatePointError(
                    f"Base points of members {sorted(colliding)} collide in round {round_idx}."
                )
            for i in to_revert:
                self.members[i].revert(round_idx)
                self.logger.debug(f"Reverted member {i} in round {round_idx} after a collision.")
            self.num_reverts += len(to_revert)

    def _build_faces(
        self, points: np.ndarray, members: List[Member], round_idx: int
    ) -> List[Face]:
        simplices: np.ndarray = self.triangulator.triangulate(points)
        return [
            Face.build(
                simplex,
                members,
                round_idx,
                self.image,
                self.cache,
                self.config.fitness,
            )
            for simplex in simplices
        ]

    def _score_round(self, round_idx: int) -> Population:
        points: np.ndarray = self._round_points(round_idx)
        faces: List[Face] = self._build_faces(points, self.members, round_idx)
        population = Population(faces=faces, points=points, round=round_idx)
        self.populations.append(population)
        self.logger.debug(f"Scored {population}.")
        return population

    def mutate(self, n: int) -> None:
        """Runs ``n`` mutation rounds followed by the merge round.

        Every round each member draws a candidate (or keeps its base point), the
        round's points are triangulated and the faces credit their fitness to the
        members. The merge round then nudges every base point towards its beneficial
        candidates and scores the merged points.

        Args:
            n: Number of mutation rounds.

        Raises:
            InvariantError: If the generation was already mutated.
        """
        if self.state != GenerationState.SEEDED:
            raise InvariantError(f"Generation cannot mutate in state '{self.state.value}'.")

        self.state = GenerationState.MUTATING
        mutation_config = self.config.mutation
        for round_idx in range(1, n + 1):
            for member in self.members:
                member.mutate(self.random_state, mutation_config)
            self._score_round(round_idx)

        self.state = GenerationState.MERGING
        for member in self.members:
            member.merge()
        self._score_round(n + 1)

        self.state = GenerationState.SCORED
        self.logger.info(
            f"Scored {len(self.populations)} rounds, {self.num_reverts} collision reverts, "
            f"cache={self.cache}."
        )

    def get_best_points(self, target: Optional[int] = None) -> List[Point]:
        """Selects the points of the best faces across all rounds.

        Faces of every population are ranked by descending fitness; the positions
        of their members are collected in that order, skipping members (and
        coordinates) already collected, until ``target`` points are gathered.

        Args:
            target: Number of points to select; defaults to the configured
                target point count.

        Returns:
            Up to ``target`` unique points, one per member.
        """
        if target is None:
            target = self.config.evolve.target_point_count

        ranked: List[Face] = sorted(
            (face for population in self.populations for face in population.faces),
            key=lambda face: face.fitness,
            reverse=True,
        )

        points: List[Point] = []
        seen_ids: Set[int] = set()
        seen_points: Set[Point] = set()
        for face in ranked:
            for member_id, vertex in zip(face.member_ids, face.triangle.vertices):
                if len(points) >= target:
                    return points
                if member_id in seen_ids or vertex in seen_points:
                    continue
                seen_ids.add(member_id)
                seen_points.add(vertex)
                points.append(vertex)
        return points

    def get_best_population(self, target: Optional[int] = None) -> Population:
        """Triangulates and scores the best points with a fresh set of members.

        Args:
            target: Number of points to select, see :meth:`get_best_points`.

        Returns:
            The population built from the selected points.
        """
        best: List[Point] = self.get_best_points(target)
        points: np.ndarray = points_to_array(best)
        members: List[Member] = [
            Member(id=i, point=p, bounds=self.bounds) for i, p in enumerate(best)
        ]
        faces: List[Face] = self._build_faces(points, members, 0)
        return Population(faces=faces, points=points, round=0)

    def render(self, population: Population) -> Tuple[np.ndarray, int]:
        """Rasterizes a population.

        Returns:
            The ``(height, width, 3)`` uint8 buffer and the number of pixels painted
            with the sentinel color.
        """
        width, height = self.image.dimensions()
        return rasterize(population.faces, width, height, self.config.render.sentinel_color)

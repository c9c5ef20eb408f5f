# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements mesh faces, their point lookup and the rasterization of a mesh.
#
# ===--------------------------------------------------------------------------------------===#

from typing import List, Optional, Sequence, Tuple

from dataclasses import dataclass

import numpy as np

from polyevolve.cache import FitnessCache
from polyevolve.config import FitnessConfig
from polyevolve.errors import MemberResolutionError
from polyevolve.image import ImageSource
from polyevolve.member import Member
from polyevolve.pixel_group import Color, PixelGroup
from polyevolve.point import Point
from polyevolve.triangle import Triangle


def evaluate_triangle(
    triangle: Triangle, image: ImageSource, config: FitnessConfig
) -> PixelGroup:
    """Clusters the pixels covered by a triangle into a color and fitness.

    Args:
        triangle: Face geometry.
        image: Source of the pixel colors.
        config: Clustering and fitness parameters.

    Returns:
        The pixel group of the covered pixels, in row-major scan order.
    """
    width, height = image.dimensions()
    xs, ys = triangle.pixel_coords(width, height)
    pixels: List[Tuple[float, ...]] = [tuple(p) for p in image.pixels(xs, ys).tolist()]
    return PixelGroup.from_pixels(pixels, config)


@dataclass(frozen=True)
class Face:
    """A triangle of one triangulation round bound to three members.

    Attributes:
        member_ids: Ids of the members at the three vertices, aligned with the
            vertices of ``triangle``.
        triangle: Geometry of the face.
        color: Representative color of the covered pixels.
        fitness: Fitness of the face, computed once at construction.
        round: Mutation round the face was triangulated in.
    """

    member_ids: Tuple[int, int, int]
    triangle: Triangle
    color: Color
    fitness: float
    round: int

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}"
            "("
            f"member_ids={self.member_ids},"
            f"round={self.round},"
            f"color={self.color},"
            f"fitness={self.fitness:.8f}"
            ")"
        )

    @classmethod
    def build(
        cls,
        simplex: Sequence[int],
        members: List[Member],
        round_idx: int,
        image: ImageSource,
        cache: FitnessCache,
        config: FitnessConfig,
    ) -> "Face":
        """Builds and scores a face, crediting its fitness to its three members.

        The simplex holds row indices into the point array that was handed to the
        triangulator, whose row ``i`` is the position of ``members[i]`` in the round,
        so vertices resolve to members by position.

        Args:
            simplex: Three row indices returned by the triangulator.
            members: Member arena of the generation, indexed by member id.
            round_idx: Round whose member positions were triangulated.
            image: Source of the pixel colors.
            cache: Memo of face evaluations.
            config: Clustering and fitness parameters.

        Returns:
            The scored face.

        Raises:
            MemberResolutionError: If an index is out of range or repeated.
        """
        member_ids: Tuple[int, ...] = tuple(int(i) for i in simplex)
        if len(member_ids) != 3 or len(set(member_ids)) != 3:
            raise MemberResolutionError(
                f"Triangle {member_ids} does not reference three distinct members."
            )
        for member_id in member_ids:
            if not 0 <= member_id < len(members):
                raise MemberResolutionError(
                    f"Triangle {member_ids} references unknown member {member_id}."
                )

        p1, p2, p3 = (members[i].point_at(round_idx) for i in member_ids)
        triangle = Triangle(p1, p2, p3)
        group: PixelGroup = cache.get_or_compute(
            p1, p2, p3, lambda: evaluate_triangle(triangle, image, config)
        )

        for member_id in member_ids:
            members[member_id].add_fitness(round_idx, group.fitness)

        return cls(
            member_ids=member_ids,
            triangle=triangle,
            color=group.color,
            fitness=group.fitness,
            round=round_idx,
        )


class FaceFinder:
    """Point-to-face lookup exploiting the locality of scan-line traversal.

    Consecutive queries tend to hit the same or a nearby face, so each search starts
    at the last face found and expands outwards, alternating lower and higher
    indices.

    Attributes:
        faces: Faces to search.
        last_index: Index of the last face found.
    """

    def __init__(self, faces: Sequence[Face]):
        self.faces: Sequence[Face] = faces
        self.last_index: int = 0

    def find(self, x: float, y: float) -> Optional[Face]:
        """Returns the first face containing ``(x, y)``, or None."""
        num_faces: int = len(self.faces)
        if num_faces == 0:
            return None

        point = Point(x, y)
        start: int = self.last_index
        if self.faces[start].triangle.contains(point):
            return self.faces[start]

        for offset in range(1, num_faces):
            for idx in (start - offset, start + offset):
                if 0 <= idx < num_faces and self.faces[idx].triangle.contains(point):
                    self.last_index = idx
                    return self.faces[idx]
        return None


def _fallback_neighbor(x: int, y: int) -> Tuple[int, int]:
    if x == 0:
        return x, y - 1
    if y == 0:
        return x - 1, y
    return x - 1, y - 1


def rasterize(
    faces: Sequence[Face], width: int, height: int, sentinel_color: Color
) -> Tuple[np.ndarray, int]:
    """Paints every pixel with the color of the face containing it.

    A pixel no face contains takes the color of the first neighbor found walking
    towards the origin (up on the left column, left on the top row, diagonally
    elsewhere). If the walk reaches the origin without a hit, the pixel gets
    ``sentinel_color``.

    Args:
        faces: Faces of the mesh.
        width: Image width in pixels.
        height: Image height in pixels.
        sentinel_color: Color of pixels no lookup could resolve.

    Returns:
        A ``(height, width, 3)`` uint8 buffer and the number of sentinel pixels.
    """
    buffer: np.ndarray = np.zeros((height, width, 3), dtype=np.uint8)
    finder = FaceFinder(faces)
    num_sentinel: int = 0

    for y in range(height):
        for x in range(width):
            face: Optional[Face] = finder.find(float(x), float(y))
            nx, ny = x, y
            while face is None and (nx, ny) != (0, 0):
                nx, ny = _fallback_neighbor(nx, ny)
                face = finder.find(float(nx), float(ny))

            if face is None:
                buffer[y, x] = sentinel_color
                num_sentinel += 1
            else:
                buffer[y, x] = face.color

    return buffer, num_sentinel

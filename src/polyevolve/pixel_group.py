# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements online color clustering and the face fitness estimate.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from dataclasses import dataclass, field
from itertools import chain, islice

from polyevolve.config import FitnessConfig

Pixel = Tuple[float, float, float]
Color = Tuple[int, int, int]

# color reported for faces that cover no pixel
SENTINEL_COLOR: Color = (255, 0, 255)


def color_distance(a: Pixel, b: Pixel) -> float:
    """Returns the squared Euclidean distance between two RGB colors."""
    return (a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2


def _to_rgb(mean: Pixel) -> Color:
    return tuple(int(max(0.0, min(255.0, c))) for c in mean)


@dataclass
class GroupBin:
    """A color cluster with a running mean.

    Attributes:
        mean: Running mean color of the bin.
        count: Number of pixels folded into the bin.
        values: The raw pixels of the bin, in insertion order.
    """

    mean: Pixel
    count: int = 1
    values: List[Pixel] = field(default_factory=list)

    @classmethod
    def seed(cls, pixel: Pixel) -> "GroupBin":
        """Creates a bin holding a single pixel."""
        return cls(mean=tuple(pixel), count=1, values=[pixel])

    def add(self, pixel: Pixel) -> None:
        """Folds a pixel into the bin, updating the running mean."""
        self.values.append(pixel)
        self.count += 1
        self.mean = tuple(m + (p - m) / self.count for m, p in zip(self.mean, pixel))


def group_fitness(
    bin_counts: Sequence[int],
    total: int,
    cumulative_distance: float,
    config: FitnessConfig,
) -> float:
    """Scores how well a single flat color represents a group of pixels.

    Homogeneous groups (one substantial bin, small spread around its mean) score
    high; groups straddling a color edge (several substantial bins, large spread)
    score low.

    Args:
        bin_counts: Pixel counts of the bins, largest first.
        total: Total number of pixels in the group.
        cumulative_distance: Sum of squared distances of the representative pixels
            from the chosen color.
        config: Fitness tuning parameters.

    Returns:
        The fitness, zero for groups smaller than ``config.min_total_pixels``.
    """
    if total < config.min_total_pixels or total == 0:
        return 0.0

    bin_threshold: int = int(total * config.substantial_bin_fraction)
    substantial_bins: int = sum(1 for count in bin_counts if count > bin_threshold)
    if substantial_bins == 0:
        return 0.0

    if substantial_bins == 1:
        bin_size_multiplier: float = float(total)
    else:
        main_bin_share: float = bin_counts[0] / total
        reward: float = next(
            (tier for share, tier in config.dominant_rewards if main_bin_share > share),
            config.base_reward,
        )
        # never above the single-bin multiplier of a group of the same size
        bin_size_multiplier = min(reward, float(total))

    bin_count_factor: float = 1.0 / substantial_bins**2

    if cumulative_distance < config.distance_floor:
        distance_factor: float = 1.0
    else:
        capped: float = min(cumulative_distance, config.distance_ceiling)
        distance_factor = (config.distance_floor / capped) ** config.distance_exponent

    return bin_size_multiplier * bin_count_factor * distance_factor


@dataclass(frozen=True)
class PixelGroup:
    """Representative color and fitness of a set of pixels.

    Attributes:
        color: Representative RGB color.
        fitness: Fitness estimate, see :func:`group_fitness`.
        total: Number of pixels in the group.
        num_bins: Number of color bins the pixels were clustered into.
    """

    color: Color
    fitness: float
    total: int = 0
    num_bins: int = 0

    @classmethod
    def from_pixels(cls, pixels: Iterable[Pixel], config: FitnessConfig) -> "PixelGroup":
        """Clusters a pixel sequence and derives its color and fitness.

        Pixels are scanned once. Each pixel joins the first existing bin (in creation
        order) whose running mean lies within ``config.cluster_distance``, or starts a
        new bin. If the largest bin holds at least ``config.min_dominant_fraction`` of
        all pixels its mean is the color; otherwise the color is the mean of the
        pixels of the largest bins, taken in descending bin size until that fraction
        of the total is reached.

        Args:
            pixels: Ordered RGB pixels.
            config: Clustering and fitness parameters.

        Returns:
            The pixel group; an empty sequence yields zero fitness and
            :data:`SENTINEL_COLOR`.
        """
        iterator: Iterator[Pixel] = iter(pixels)
        first: Optional[Pixel] = next(iterator, None)
        if first is None:
            return cls(color=SENTINEL_COLOR, fitness=0.0)

        total: int = 1
        bins: List[GroupBin] = [GroupBin.seed(first)]
        for pixel in iterator:
            total += 1
            for group_bin in bins:
                if color_distance(group_bin.mean, pixel) < config.cluster_distance:
                    group_bin.add(pixel)
                    break
            else:
                bins.append(GroupBin.seed(pixel))

        bins.sort(key=lambda b: b.count, reverse=True)

        min_pixel_count: float = total * config.min_dominant_fraction
        if bins[0].count < min_pixel_count:
            subset: List[Pixel] = list(
                islice(chain.from_iterable(b.values for b in bins), int(min_pixel_count))
            )
            mean: Pixel = (0.0, 0.0, 0.0)
            for count, pixel in enumerate(subset, start=1):
                mean = tuple(m + (p - m) / count for m, p in zip(mean, pixel))
        else:
            subset = bins[0].values
            mean = bins[0].mean

        cumulative_distance: float = sum(color_distance(mean, pixel) for pixel in subset)
        fitness: float = group_fitness(
            [b.count for b in bins], total, cumulative_distance, config
        )
        return cls(color=_to_rgb(mean), fitness=fitness, total=total, num_bins=len(bins))

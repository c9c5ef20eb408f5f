# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the configuration blocks of PolyEvolve and their YAML loading.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from dataclasses import dataclass, field
import pathlib

import yaml

T = TypeVar("T")


@dataclass
class MutationConfig:
    """Configuration block for candidate point generation.

    Attributes:
        probability: Chance that a member produces a mutated candidate in a round.
        stddev: Standard deviation, in pixels, of each Gaussian delta component.
    """

    probability: float = 0.6
    stddev: float = 10.0


@dataclass
class FitnessConfig:
    """Configuration block for pixel clustering and face fitness.

    Attributes:
        cluster_distance: Squared RGB distance under which a pixel joins a bin.
        min_dominant_fraction: Share of all pixels the largest bin must hold to
            define the face color on its own.
        substantial_bin_fraction: Share of all pixels a bin must exceed to count
            as substantial.
        min_total_pixels: Faces covering fewer pixels get zero fitness.
        dominant_rewards: Ordered ``(share, multiplier)`` tiers applied when more
            than one bin is substantial; the first tier whose share the largest bin
            exceeds wins. Multipliers are capped at the pixel count of the group.
        base_reward: Multiplier used when no reward tier applies.
        distance_floor: Cumulative distance below which the distance factor is 1.
        distance_ceiling: Cumulative distance above which the distance factor
            stops decreasing.
        distance_exponent: Power applied to the normalised cumulative distance.
    """

    cluster_distance: float = 150.0
    min_dominant_fraction: float = 0.95
    substantial_bin_fraction: float = 0.01
    min_total_pixels: int = 10
    dominant_rewards: List[Tuple[float, float]] = field(
        default_factory=lambda: [(0.9, 100.0), (0.75, 10.0)]
    )
    base_reward: float = 1.0
    distance_floor: float = 10.0
    distance_ceiling: float = 1000.0
    distance_exponent: float = 3.0


@dataclass
class EvolveConfig:
    """Configuration block for the outer optimisation loop.

    Attributes:
        segments: Grid points per axis of the initial seed; the target point
            count of every generation is ``segments ** 2``.
        generations: Number of generations after generation 0.
        mutations_per_generation: Mutation rounds per generation.
        ckpt: Save a checkpoint every ``ckpt`` generations (0 disables).
        early_stopping_rounds: Stop after this many generations without
            improvement of the best population fitness (0 disables).
        output_ext: File extension of rendered images.
    """

    segments: int = 35
    generations: int = 20
    mutations_per_generation: int = 10
    ckpt: int = 5
    early_stopping_rounds: int = 0
    output_ext: str = "jpg"

    @property
    def target_point_count(self) -> int:
        return self.segments**2


@dataclass
class RenderConfig:
    """Configuration block for rasterization."""

    sentinel_color: Tuple[int, int, int] = (0, 255, 255)


@dataclass
class RunConfig:
    """Full configuration of a PolyEvolve run."""

    seed: Optional[int] = None
    evolve: EvolveConfig = field(default_factory=EvolveConfig)
    mutation: MutationConfig = field(default_factory=MutationConfig)
    fitness: FitnessConfig = field(default_factory=FitnessConfig)
    render: RenderConfig = field(default_factory=RenderConfig)


def _section(cls: Type[T], raw: Optional[Dict[str, Any]]) -> T:
    """Builds a dataclass from a config section, defaulting missing fields."""
    raw = raw or {}
    default: T = cls()
    return cls(
        **{name: raw.get(name, getattr(default, name)) for name in cls.__dataclass_fields__}
    )


def _validate(config: RunConfig) -> None:
    evolve, mutation, fitness = config.evolve, config.mutation, config.fitness
    if evolve.segments < 2:
        raise ValueError(f"EVOLVE_CONFIG.segments must be at least 2, got {evolve.segments}.")
    if evolve.generations < 0 or evolve.mutations_per_generation < 0:
        raise ValueError("EVOLVE_CONFIG.generations and mutations_per_generation must be >= 0.")
    if not 0.0 <= mutation.probability <= 1.0:
        raise ValueError(f"MUTATION.probability must be in [0, 1], got {mutation.probability}.")
    if mutation.stddev < 0.0:
        raise ValueError(f"MUTATION.stddev must be >= 0, got {mutation.stddev}.")
    if not 0.0 < fitness.min_dominant_fraction <= 1.0:
        raise ValueError(
            f"FITNESS.min_dominant_fraction must be in (0, 1], got {fitness.min_dominant_fraction}."
        )
    if fitness.distance_floor <= 0.0 or fitness.distance_ceiling < fitness.distance_floor:
        raise ValueError("FITNESS requires 0 < distance_floor <= distance_ceiling.")


def config_from_dict(raw: Optional[Dict[str, Any]]) -> RunConfig:
    """Builds a validated run configuration from a parsed YAML document.

    Args:
        raw: Parsed document with optional ``SEED``, ``EVOLVE_CONFIG``, ``MUTATION``,
            ``FITNESS`` and ``RENDER`` sections. ``None`` yields the defaults.

    Returns:
        The run configuration.

    Raises:
        ValueError: If a value is out of its valid range.
    """
    raw = raw or {}
    fitness: FitnessConfig = _section(FitnessConfig, raw.get("FITNESS"))
    fitness.dominant_rewards = [(float(s), float(m)) for s, m in fitness.dominant_rewards]
    render: RenderConfig = _section(RenderConfig, raw.get("RENDER"))
    render.sentinel_color = tuple(int(c) for c in render.sentinel_color)

    config = RunConfig(
        seed=raw.get("SEED", None),
        evolve=_section(EvolveConfig, raw.get("EVOLVE_CONFIG")),
        mutation=_section(MutationConfig, raw.get("MUTATION")),
        fitness=fitness,
        render=render,
    )
    _validate(config)
    return config


def load_config(cfg_path: Optional[str | pathlib.Path]) -> RunConfig:
    """Loads a run configuration from a YAML file.

    Args:
        cfg_path: Path to the YAML file, or None for the defaults.

    Returns:
        The run configuration.
    """
    if cfg_path is None:
        return config_from_dict(None)
    with open(cfg_path, "r") as f:
        raw: Optional[Dict[str, Any]] = yaml.safe_load(f)
    return config_from_dict(raw)

# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements checkpointing routines.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Any, Dict, List, Optional, Tuple

import logging
import os
import pathlib
import pickle as pkl
import re

from polyevolve.point import Point

CKPT_PATTERN: re.Pattern = re.compile(r"ckpt_(\d+)\.pkl$")


def save_ckpt(
    curr_generation: int,
    points: List[Point],
    evolve_state: Dict[str, Any],
    random_state: Tuple,
    ckpt_dir: str | pathlib.Path,
    logger: Optional[logging.Logger] = None,
) -> pathlib.Path:
    """Saves a checkpoint of the optimisation state.

    Args:
        curr_generation: Generation number used to name the checkpoint.
        points: Seed points of the next generation.
        evolve_state: Dictionary with the fitness history and errors of the run.
        random_state: State of the run's ``random.Random`` (``getstate()``).
        ckpt_dir: Directory where the checkpoint file is written.
        logger: Logger reporting the save.

    Returns:
        Path of the written checkpoint.
    """
    data: Dict[str, Any] = {
        "points": [p.values() for p in points],
        "evolve_state": evolve_state,
        "random_state": random_state,
    }
    if isinstance(ckpt_dir, str):
        ckpt_dir = pathlib.Path(ckpt_dir)

    ckpt_path: pathlib.Path = ckpt_dir.joinpath(f"ckpt_{curr_generation}.pkl")
    with open(ckpt_path, "wb") as f:
        pkl.dump(data, f, protocol=pkl.HIGHEST_PROTOCOL)

    if logger is not None:
        logger.info(f"Checkpoint {curr_generation} successfully saved at '{ckpt_path}'.")
    return ckpt_path


def load_ckpt(
    generation: int, ckpt_dir: str | pathlib.Path
) -> Tuple[List[Point], Dict[str, Any], Optional[Tuple]]:
    """Loads a checkpoint saved by :func:`save_ckpt`.

    Args:
        generation: Generation number of the checkpoint.
        ckpt_dir: Directory containing the checkpoint files.

    Returns:
        A tuple containing:
            - The seed points of the next generation
            - The evolve state dictionary
            - The random state, None if absent
    """
    if isinstance(ckpt_dir, str):
        ckpt_dir = pathlib.Path(ckpt_dir)

    with open(ckpt_dir.joinpath(f"ckpt_{generation}.pkl"), "rb") as f:
        data: Dict[str, Any] = pkl.load(f)

    return (
        [Point(float(x), float(y)) for x, y in data.get("points", [])],
        data.get("evolve_state", {}),
        data.get("random_state", None),
    )


def latest_ckpt(ckpt_dir: str | pathlib.Path) -> int:
    """Returns the largest checkpoint number in a directory, 0 if there is none."""
    if not os.path.isdir(ckpt_dir):
        return 0
    numbers: List[int] = [
        int(match.group(1))
        for match in (CKPT_PATTERN.match(f) for f in os.listdir(ckpt_dir))
        if match
    ]
    return max(numbers, default=0)

# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the main optimisation loop of PolyEvolve.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Any, Dict, List, Optional

import logging
import os
import pathlib
import random
import time

from polyevolve.config import RunConfig
from polyevolve.generation import Generation, Population, grid_points
from polyevolve.image import ImageSink, ImageSource
from polyevolve.point import Point
from polyevolve.triangulation import DelaunayTriangulator, Triangulator
from polyevolve.utils.ckpt_utils import latest_ckpt, load_ckpt, save_ckpt
from polyevolve.utils.logging_utils import get_logger

MAX_LOG_MSG_SZ: int = 256


def new_evolve_state() -> Dict[str, Any]:
    return {
        "early_stop_counter": 0,
        "best_fit_hist": [],
        "avg_fit_hist": [],
        "num_faces": [],
        "timings": [],
        "errors": [],
    }


def finish_generation(
    generation_num: int,
    generation: Generation,
    evolve_state: Dict[str, Any],
    config: RunConfig,
    args: Dict[str, Any],
    sink: ImageSink,
    start_time: float,
    logger: logging.Logger,
) -> List[Point]:
    """Selects, renders and saves the best population of a generation.

    A failure to write the output image is logged and recorded in
    ``evolve_state["errors"]``; the run goes on.

    Args:
        generation_num: Number of the generation, used in the output file name.
        generation: The scored generation.
        evolve_state: Dictionary tracking fitness history and errors.
        config: Run configuration.
        args: Run arguments, ``args["out_dir"]`` receives the output image.
        sink: Image writer.
        start_time: ``time.perf_counter()`` at the start of the generation.
        logger: Logger of the run.

    Returns:
        The points of the best population, the seed of the next generation.
    """
    population: Population = generation.get_best_population()
    logger.info(f"Best population: {population}")

    buffer, num_sentinel = generation.render(population)
    if num_sentinel:
        logger.warning(f"{num_sentinel} pixel(s) matched no face and got the sentinel color.")

    out_path: pathlib.Path = pathlib.Path(args["out_dir"]).joinpath(
        f"output-{generation_num}.{config.evolve.output_ext}"
    )
    width, height = generation.image.dimensions()
    try:
        sink.save(out_path, width, height, buffer)
        logger.info(f"Saved image at '{out_path}'.")
    except (OSError, ValueError) as err:
        logger.error(f"Error when saving image '{out_path}': {str(err)}.")
        error_info: Dict[str, Any] = {
            "generation": generation_num,
            "motive": "save_image",
            "error_msg": str(err),
        }
        evolve_state["errors"].append(error_info)

    evolve_state["best_fit_hist"].append(population.total_fitness)
    evolve_state["avg_fit_hist"].append(population.mean_fitness)
    evolve_state["num_faces"].append(len(population.faces))
    evolve_state["timings"].append(time.perf_counter() - start_time)
    logger.info(
        f"Generation {generation_num} done in {evolve_state['timings'][-1]:.2f}s, "
        f"best fitness {evolve_state['best_fit_hist'][-1]:.4f}, "
        f"mean face fitness {evolve_state['avg_fit_hist'][-1]:.4f}."
    )

    return population.point_list()


def evolve_loop(
    start_generation: int,
    points: List[Point],
    evolve_state: Dict[str, Any],
    image: ImageSource,
    config: RunConfig,
    args: Dict[str, Any],
    triangulator: Triangulator,
    sink: ImageSink,
    random_state: random.Random,
    logger: logging.Logger,
) -> List[Point]:
    """Runs the generations following ``start_generation``.

    Each generation is seeded with the best points of the previous one, mutated,
    merged, and its best population is rendered to ``output-<n>.<ext>``. The loop
    checkpoints every ``config.evolve.ckpt`` generations, stops early after
    ``config.evolve.early_stopping_rounds`` generations without improvement of the
    best population fitness, and saves a final checkpoint.

    Args:
        start_generation: Last completed generation (0 for new runs).
        points: Seed points of the first generation to run.
        evolve_state: Dictionary tracking fitness history and errors.
        image: Image the mesh is fitted to.
        config: Run configuration.
        args: Run arguments with the ``out_dir`` and ``ckpt_dir`` paths.
        triangulator: Triangulation backend.
        sink: Image writer.
        random_state: Source of randomness, saved in checkpoints.
        logger: Logger of the run.

    Returns:
        The seed points for the generation after the last one run.
    """
    evolve_config = config.evolve
    logger.info("============ STARTING EVOLUTIONARY LOOP ============")
    logger.info(f"Starting from generation {start_generation} with evolve_config = {evolve_config}")

    generation_num: int = start_generation
    for generation_num in range(start_generation + 1, evolve_config.generations + 1):
        logger.info(f"========= GENERATION {generation_num} =========")
        start_time: float = time.perf_counter()

        generation = Generation(points, image, config, triangulator, random_state, logger=logger)
        generation.mutate(evolve_config.mutations_per_generation)
        points = finish_generation(
            generation_num, generation, evolve_state, config, args, sink, start_time, logger
        )

        best_fit_hist: List[float] = evolve_state["best_fit_hist"]
        if len(best_fit_hist) > 1 and best_fit_hist[-1] <= max(best_fit_hist[:-1]):
            evolve_state["early_stop_counter"] += 1
            logger.info(
                (
                    f"Early stopping counter increased: {evolve_state['early_stop_counter']}"
                    f"/{evolve_config.early_stopping_rounds}"
                )
            )
        else:
            evolve_state["early_stop_counter"] = 0

        if evolve_config.ckpt and generation_num % evolve_config.ckpt == 0:
            logger.info("=== CHECKPOINT STEP ===")
            save_ckpt(
                curr_generation=generation_num,
                points=points,
                evolve_state=evolve_state,
                random_state=random_state.getstate(),
                ckpt_dir=args["ckpt_dir"],
                logger=logger,
            )

        if (
            evolve_config.early_stopping_rounds
            and evolve_state["early_stop_counter"] >= evolve_config.early_stopping_rounds
        ):
            logger.info(
                (
                    f"EARLY STOPPING: {evolve_state['early_stop_counter']}"
                    " consecutive generations without improvement."
                )
            )
            break

    logger.info("====== ALGORITHM FINISHED ======")
    save_ckpt(
        curr_generation=generation_num,
        points=points,
        evolve_state=evolve_state,
        random_state=random_state.getstate(),
        ckpt_dir=args["ckpt_dir"],
        logger=logger,
    )
    return points


def resolve_ckpt(
    load_ckpt_arg: int, ckpt_dir: str | pathlib.Path, logger: Optional[logging.Logger] = None
) -> int:
    """Maps the ``--load_ckpt`` argument to an existing checkpoint number.

    0 starts anew, -1 selects the latest checkpoint and any other number selects
    that checkpoint, falling back to the latest one if it does not exist.
    """
    logger = logger if logger is not None else logging.getLogger(__name__)
    if load_ckpt_arg == 0:
        return 0
    latest: int = latest_ckpt(ckpt_dir)
    if load_ckpt_arg > 0 and os.path.exists(
        pathlib.Path(ckpt_dir).joinpath(f"ckpt_{load_ckpt_arg}.pkl")
    ):
        return load_ckpt_arg
    if load_ckpt_arg > 0:
        logger.warning(
            f"Checkpoint {load_ckpt_arg} not found, resuming from latest checkpoint: {latest}"
        )
    return latest


def polyevolve(
    args: Dict[str, Any],
    config: RunConfig,
    triangulator: Optional[Triangulator] = None,
    sink: Optional[ImageSink] = None,
) -> int:
    """Main entry point of a PolyEvolve run.

    Loads the image, seeds generation 0 with a regular grid (or restores the state
    of a checkpoint) and runs the optimisation loop.

    Args:
        args: Run arguments: ``image_path``, ``out_dir``, ``ckpt_dir`` and
            ``load_ckpt`` (checkpoint number to resume from, 0 for a new run).
        config: Run configuration.
        triangulator: Triangulation backend; Delaunay if None.
        sink: Image writer; a Pillow writer if None.

    Returns:
        Exit status: 0 on success, 1 if the image cannot be loaded.
    """
    out_dir = pathlib.Path(args["out_dir"])
    ckpt_dir = pathlib.Path(args.get("ckpt_dir", None) or out_dir.joinpath("ckpt"))
    os.makedirs(out_dir, exist_ok=True)
    os.makedirs(ckpt_dir, exist_ok=True)
    args = {**args, "out_dir": out_dir, "ckpt_dir": ckpt_dir}

    # LOGGER
    logger: logging.Logger = get_logger(
        results_dir=out_dir,
        append_mode=(args.get("load_ckpt", 0) != 0),
        max_msg_sz=MAX_LOG_MSG_SZ,
    )
    logger.info("=== PolyEvolve ===")

    start_generation: int = resolve_ckpt(args.get("load_ckpt", 0), ckpt_dir, logger)

    try:
        image: ImageSource = ImageSource.open(args["image_path"])
    except OSError as err:
        logger.error(f"Error when loading image '{args['image_path']}': {str(err)}.")
        return 1
    logger.info(f"image={image}")

    triangulator = triangulator if triangulator is not None else DelaunayTriangulator(logger=logger)
    sink = sink if sink is not None else ImageSink()
    random_state = random.Random(config.seed)
    logger.info(f"triangulator={triangulator}")
    logger.info(f"config={config}")

    if start_generation:
        points, evolve_state, saved_random_state = load_ckpt(start_generation, ckpt_dir)
        if saved_random_state is not None:
            random_state.setstate(saved_random_state)
        logger.info(f"Resuming from checkpoint {start_generation} with {len(points)} points.")
    else:
        logger.info("Starting anew.")
        evolve_state = new_evolve_state()
        width, height = image.dimensions()

        logger.info("========= GENERATION 0 =========")
        start_time: float = time.perf_counter()
        generation = Generation(
            grid_points(width, height, config.evolve.segments),
            image,
            config,
            triangulator,
            random_state,
            logger=logger,
        )
        points = finish_generation(
            0, generation, evolve_state, config, args, sink, start_time, logger
        )

    if start_generation and (
        start_generation >= config.evolve.generations
        or (
            config.evolve.early_stopping_rounds
            and evolve_state["early_stop_counter"] >= config.evolve.early_stopping_rounds
        )
    ):
        logger.info("Loaded checkpoint already finished the algorithm.")
        return 0

    evolve_loop(
        start_generation,
        points,
        evolve_state,
        image,
        config,
        args,
        triangulator,
        sink,
        random_state,
        logger,
    )
    return 0

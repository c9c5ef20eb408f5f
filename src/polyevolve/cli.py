# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the command-line interface of PolyEvolve.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Any, Dict, List, Optional

import argparse
import os
from pathlib import Path
import sys

import yaml

from polyevolve.config import RunConfig, config_from_dict
from polyevolve.evolution import polyevolve

CFG_COPY_NAME: str = "config.yaml"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses command-line arguments for a PolyEvolve run.

    Returns:
        Parsed arguments containing the image path, config path, output directory
        and checkpoint settings.
    """
    parser = argparse.ArgumentParser(
        description="Approximates an image with an evolving low-polygon triangle mesh."
    )
    parser.add_argument("image", type=str, help="path to the input image.")
    parser.add_argument("--cfg_path", type=str, default=None, help="path to .yaml config file.")
    parser.add_argument(
        "--out_dir",
        type=str,
        default=".",
        help="path to directory that will contain the outputs of PolyEvolve.",
    )
    parser.add_argument(
        "--load_ckpt",
        type=int,
        default=0,
        help="checkpoint to be loaded, if 0 will start anew, if -1 will load latest.",
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for PolyEvolve.

    Validates the input paths, loads the configuration (reusing the copy kept in the
    output directory when resuming), copies it to the output directory and runs
    the optimisation.

    Args:
        argv: Command-line arguments; ``sys.argv[1:]`` if None.

    Returns:
        Exit status of the run.
    """
    # args
    args: Dict[str, Any] = vars(parse_args(argv))
    args["image_path"] = Path(args.pop("image"))
    args["cfg_path"] = Path(args["cfg_path"]) if args["cfg_path"] else None
    args["out_dir"] = Path(args["out_dir"])
    args["ckpt_dir"] = args["out_dir"].joinpath("ckpt")

    try:
        for path in [args["image_path"], args["cfg_path"]]:
            if path is not None:
                assert os.path.exists(path), f"Path {path} not found."
    except AssertionError as err:
        print(str(err))
        sys.exit(1)

    # config
    os.makedirs(args["out_dir"], exist_ok=True)
    cfg_copy_path: Path = args["out_dir"].joinpath(CFG_COPY_NAME)

    try:
        if os.path.exists(cfg_copy_path) and args["load_ckpt"]:
            with open(cfg_copy_path, "r") as f:
                raw: Optional[Dict[str, Any]] = yaml.safe_load(f)
        elif args["cfg_path"] is not None:
            with open(args["cfg_path"], "r") as f:
                raw = yaml.safe_load(f)
        else:
            raw = None
        config: RunConfig = config_from_dict(raw)
        with open(cfg_copy_path, "w") as f:
            yaml.safe_dump(raw or {}, f)
    except (OSError, yaml.YAMLError, ValueError, TypeError) as err:
        print(str(err))
        sys.exit(1)

    return polyevolve(args, config)


if __name__ == "__main__":
    sys.exit(main())

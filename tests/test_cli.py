# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements tests for the command-line interface.
#
# ===--------------------------------------------------------------------------------------===#

import numpy as np
import pytest
import yaml
from PIL import Image

from polyevolve.cli import main, parse_args


def _write_config(path, **evolve):
    config = {
        "SEED": 1,
        "EVOLVE_CONFIG": {"segments": 3, "generations": 1, "mutations_per_generation": 1, **evolve},
        "FITNESS": {"min_total_pixels": 1},
    }
    with open(path, "w") as f:
        yaml.safe_dump(config, f)
    return path


def test_parse_args_defaults():
    args = parse_args(["image.png"])

    assert args.image == "image.png"
    assert args.cfg_path is None
    assert args.out_dir == "."
    assert args.load_ckpt == 0


def test_missing_image_exits_with_error(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        main([str(tmp_path / "missing.png"), "--out_dir", str(tmp_path)])

    assert exc_info.value.code == 1


def test_invalid_config_exits_with_error(tmp_path):
    image_path = tmp_path / "input.png"
    Image.fromarray(np.zeros((8, 8, 3), dtype=np.uint8)).save(image_path)
    cfg_path = _write_config(tmp_path / "bad.yaml", segments=1)

    with pytest.raises(SystemExit) as exc_info:
        main([str(image_path), "--cfg_path", str(cfg_path), "--out_dir", str(tmp_path / "out")])

    assert exc_info.value.code == 1


def test_main_runs_and_copies_config(tmp_path):
    image_path = tmp_path / "input.png"
    Image.fromarray(np.full((8, 8, 3), 90, dtype=np.uint8)).save(image_path)
    cfg_path = _write_config(tmp_path / "run.yaml")
    out_dir = tmp_path / "out"

    status = main([str(image_path), "--cfg_path", str(cfg_path), "--out_dir", str(out_dir)])

    assert status == 0
    assert (out_dir / "output-0.jpg").exists()
    assert (out_dir / "output-1.jpg").exists()
    with open(out_dir / "config.yaml") as f:
        assert yaml.safe_load(f)["EVOLVE_CONFIG"]["segments"] == 3

# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements end-to-end tests for the optimisation loop.
#
# ===--------------------------------------------------------------------------------------===#

import logging

import numpy as np
import pytest
from PIL import Image

from polyevolve.config import config_from_dict
from polyevolve.evolution import polyevolve, resolve_ckpt
from polyevolve.image import ImageSink
from polyevolve.utils.ckpt_utils import latest_ckpt, load_ckpt


def _write_image(path):
    array = np.zeros((16, 16, 3), dtype=np.uint8)
    array[:, :8] = (200, 30, 30)
    array[:, 8:] = (30, 30, 200)
    Image.fromarray(array).save(path)
    return path


def _config(generations=2, **evolve):
    return config_from_dict(
        {
            "SEED": 0,
            "EVOLVE_CONFIG": {
                "segments": 3,
                "generations": generations,
                "mutations_per_generation": 2,
                "ckpt": 1,
                "output_ext": "png",
                **evolve,
            },
            "MUTATION": {"stddev": 1.0},
            "FITNESS": {"min_total_pixels": 1},
        }
    )


def _args(tmp_path, load_ckpt=0):
    return {
        "image_path": _write_image(tmp_path / "input.png"),
        "out_dir": tmp_path / "out",
        "load_ckpt": load_ckpt,
    }


class FailingSink(ImageSink):
    def save(self, path, width, height, buffer):
        raise OSError(f"cannot write {path}")


def test_run_writes_one_image_per_generation(tmp_path):
    status = polyevolve(_args(tmp_path), _config())

    out_dir = tmp_path / "out"
    assert status == 0
    for generation in range(3):
        with Image.open(out_dir / f"output-{generation}.png") as img:
            assert img.size == (16, 16)
    assert (out_dir / "results.log").exists()
    assert latest_ckpt(out_dir / "ckpt") == 2

    points, evolve_state, random_state = load_ckpt(2, out_dir / "ckpt")
    assert 3 <= len(points) <= 9
    assert len(evolve_state["best_fit_hist"]) == 3
    assert len(evolve_state["num_faces"]) == 3
    for mean, total, num_faces in zip(
        evolve_state["avg_fit_hist"], evolve_state["best_fit_hist"], evolve_state["num_faces"]
    ):
        assert mean * num_faces == pytest.approx(total)
    assert evolve_state["errors"] == []
    assert random_state is not None


def test_save_failures_are_recorded_and_the_run_continues(tmp_path):
    status = polyevolve(_args(tmp_path), _config(), sink=FailingSink())

    assert status == 0
    _, evolve_state, _ = load_ckpt(2, tmp_path / "out" / "ckpt")
    assert [e["generation"] for e in evolve_state["errors"]] == [0, 1, 2]
    assert all(e["motive"] == "save_image" for e in evolve_state["errors"])
    assert not (tmp_path / "out" / "output-1.png").exists()


def test_run_resumes_from_latest_checkpoint(tmp_path):
    polyevolve(_args(tmp_path), _config(generations=1))

    status = polyevolve(_args(tmp_path, load_ckpt=-1), _config(generations=2))

    ckpt_dir = tmp_path / "out" / "ckpt"
    assert status == 0
    assert (tmp_path / "out" / "output-2.png").exists()
    _, evolve_state, _ = load_ckpt(2, ckpt_dir)
    assert len(evolve_state["best_fit_hist"]) == 3


def test_unreadable_image_fails(tmp_path):
    bad = tmp_path / "bad.png"
    bad.write_text("not an image")
    args = {"image_path": bad, "out_dir": tmp_path / "out", "load_ckpt": 0}

    assert polyevolve(args, _config()) == 1


def test_early_stopping_ends_the_run(tmp_path):
    config = _config(generations=50, early_stopping_rounds=1)
    config.mutation.probability = 0.0

    polyevolve(_args(tmp_path), config)

    # without mutations the best population cannot improve
    last = latest_ckpt(tmp_path / "out" / "ckpt")
    assert last < 50
    _, evolve_state, _ = load_ckpt(last, tmp_path / "out" / "ckpt")
    assert evolve_state["early_stop_counter"] == 1


def test_resolve_ckpt(tmp_path, caplog):
    (tmp_path / "ckpt_3.pkl").write_bytes(b"")
    (tmp_path / "ckpt_5.pkl").write_bytes(b"")

    assert resolve_ckpt(0, tmp_path) == 0
    assert resolve_ckpt(-1, tmp_path) == 5
    assert resolve_ckpt(3, tmp_path) == 3
    assert "not found" not in caplog.text

    with caplog.at_level(logging.WARNING):
        assert resolve_ckpt(4, tmp_path, logging.getLogger("resume")) == 5
    assert "Checkpoint 4 not found, resuming from latest checkpoint: 5" in caplog.text

# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements tests for the logging utilities.
#
# ===--------------------------------------------------------------------------------------===#

import logging

import pytest

from polyevolve.utils.logging_utils import SizeLimitedFormatter, get_logger


def _record(msg, *args) -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_long_messages_are_truncated():
    formatter = SizeLimitedFormatter("%(message)s", max_msg_sz=20)

    assert formatter.format(_record("short")) == "short"
    formatted = formatter.format(_record("x" * 50))
    assert formatted == "xxxxx... [TRUNCATED]"
    assert len(formatted) == 20


def test_truncation_keeps_the_record_intact():
    formatter = SizeLimitedFormatter("%(message)s", max_msg_sz=20)
    record = _record("value=%s", "y" * 40)

    assert formatter.format(record).endswith("... [TRUNCATED]")
    assert record.getMessage() == "value=" + "y" * 40


def test_formatter_rejects_tiny_limits():
    with pytest.raises(ValueError):
        SizeLimitedFormatter(max_msg_sz=10)


def test_get_logger_writes_results_log_once(tmp_path):
    logger = get_logger(results_dir=tmp_path)
    same = get_logger(results_dir=tmp_path)

    logger.info("========= GENERATION 1 =========")
    for handler in logger.handlers:
        handler.flush()

    assert same is logger
    assert len(logger.handlers) == 2
    assert not logger.propagate
    content = (tmp_path / "results.log").read_text()
    assert "[polyevolve]" in content
    assert "| INFO | ========= GENERATION 1 =========" in content

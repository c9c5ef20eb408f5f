# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the logging setup of PolyEvolve runs.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Optional

import logging
import pathlib

TRUNCATION_SUFFIX: str = "... [TRUNCATED]"


class SizeLimitedFormatter(logging.Formatter):
    """Logging formatter that truncates long message bodies.

    Only the message itself counts towards the limit, not the timestamp, level or
    other parts added by the format string. The record is restored after
    formatting so other handlers see the full message.

    Attributes:
        max_msg_sz: Maximum length of a message body in characters.
    """

    def __init__(
        self, fmt: Optional[str] = None, datefmt: Optional[str] = None, max_msg_sz: int = 256
    ) -> None:
        """Initializes the formatter.

        Args:
            fmt: Format string of the records.
            datefmt: Format string of the timestamps.
            max_msg_sz: Maximum message body length; longer bodies are cut and
                suffixed with ``"... [TRUNCATED]"``.

        Raises:
            ValueError: If max_msg_sz cannot hold the truncation suffix.
        """
        if max_msg_sz < len(TRUNCATION_SUFFIX):
            raise ValueError(
                f"max_msg_sz must be at least {len(TRUNCATION_SUFFIX)} characters "
                "to accommodate the truncation suffix."
            )

        super().__init__(fmt, datefmt)
        self.max_msg_sz: int = max_msg_sz

    def format(self, record: logging.LogRecord) -> str:
        message: str = record.getMessage()
        if len(message) <= self.max_msg_sz:
            return super().format(record)

        original_msg, original_args = record.msg, record.args
        record.msg = message[: self.max_msg_sz - len(TRUNCATION_SUFFIX)] + TRUNCATION_SUFFIX
        record.args = None
        try:
            return super().format(record)
        finally:
            record.msg, record.args = original_msg, original_args


def get_logger(
    results_dir: Optional[pathlib.Path] = None,
    append_mode: bool = False,
    max_msg_sz: int = 256,
) -> logging.Logger:
    """Creates the logger of a run.

    The logger writes to stdout and, if ``results_dir`` is given, to
    ``results_dir/results.log``. Loggers are cached by name, so calling this twice
    for the same directory returns the same logger without duplicating handlers.

    Args:
        results_dir: Directory of the log file; None logs to stdout only.
        append_mode: If True, append to an existing log file instead of
            overwriting it.
        max_msg_sz: Maximum size of a logged message in characters.

    Returns:
        The configured logger.
    """
    if results_dir:
        sanitized_dir: str = str(results_dir).replace("/", "_").replace("\\", "_")
        logger_name: str = f"polyevolve_{sanitized_dir}"
    else:
        logger_name = "polyevolve_stdout"

    logger: logging.Logger = logging.getLogger(logger_name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        formatter = SizeLimitedFormatter(
            "[polyevolve] %(asctime)s | %(levelname)s | %(message)s",
            max_msg_sz=max_msg_sz,
        )
        logger.propagate = False

        stream_handler: logging.StreamHandler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

        if results_dir:
            file_handler: logging.FileHandler = logging.FileHandler(
                pathlib.Path(results_dir).joinpath("results.log"),
                mode="a" if append_mode else "w",
            )
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger

"""Environment-driven defaults."""

from __future__ import annotations

import os

ENV_ID_MODE = "THREATFLOW_ID_MODE"
ENV_OUTPUT_FORMAT = "THREATFLOW_OUTPUT_FORMAT"
ENV_LOG_LEVEL = "THREATFLOW_LOG_LEVEL"
ENV_DEBUG = "THREATFLOW_DEBUG"

DEFAULT_ID_MODE = os.environ.get(ENV_ID_MODE, "counter")
DEFAULT_OUTPUT_FORMAT = os.environ.get(ENV_OUTPUT_FORMAT, "markdown")
DEFAULT_LOG_LEVEL = "WARNING"


def debug_enabled() -> bool:
    return os.environ.get(ENV_DEBUG, "").lower() in ("1", "true", "yes")

"""Log output format selection for the mock HTTP service."""

import os
from typing import Literal


LogFormat = Literal["json", "console", "plain"]

ENV_VAR_NAME = "CONSOLE_OUTPUT_FORMAT"

# CONSOLE_OUTPUT_FORMAT values shared with the other tools -> log format
_ENV_FORMATS: dict[str, LogFormat] = {
    "json": "json",
    "plain": "plain",
    "auto": "console",
    "rich": "console",
    "console": "console",
}


def get_log_format(cli_override: str | None = None) -> LogFormat:
    """
    Resolve the log format: CLI parameter > environment variable > ``console``.

    Args:
        cli_override: Optional CLI parameter value that takes precedence

    Returns:
        LogFormat value
    """
    if cli_override:
        format_lower = cli_override.lower()
        if format_lower in ("json", "console", "plain"):
            return format_lower  # type: ignore

    env_value = os.environ.get(ENV_VAR_NAME)
    if env_value:
        mapped = _ENV_FORMATS.get(env_value.lower())
        if mapped:
            return mapped

    return "console"

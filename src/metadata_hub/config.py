"""Configuration module for the metadata hub.

Centralizes configuration constants and environment variables. Values are
read from the environment (optionally populated from a .env file by the
CLI) when load_config() is called.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .logging_config import get_logger

logger = get_logger(__name__, namespace='decoder')


# ============================================================================
# Server Configuration
# ============================================================================

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

# Seconds between keep-alive comments on idle event streams
SSE_KEEPALIVE_INTERVAL = 15

# Maximum events queued for a single subscriber before it is dropped
SUBSCRIBER_QUEUE_SIZE = 1000


# ============================================================================
# Decoder Process Configuration
# ============================================================================

# Minimum verbosity passed to the decoder; lower levels hide the lines the
# rules are written against
MIN_VERBOSITY = 3

VERBOSITY_FLAGS = ('-v', '--verbosity')

# Fixed delay before relaunching an exited decoder (seconds)
RESTART_DELAY_SECONDS = 5.0

# Grace period between SIGTERM and SIGKILL on shutdown (seconds)
TERMINATE_TIMEOUT_SECONDS = 5.0

# Bytes requested per read from the decoder's output pipes
READ_CHUNK_SIZE = 4096


# ============================================================================
# Rule Configuration
# ============================================================================

DEFAULT_RULES_PATH = Path.cwd() / "regex-config.json"

# Bare words or double-quoted strings, possibly adjacent (e.g. --name="a b")
_ARG_PATTERN = re.compile(r'(?:[^\s"]+|"[^"]*")+')


@dataclass
class HubConfig:
    """Runtime configuration consumed by the hub core."""
    spawn_command: Optional[str] = None
    spawn_args: list[str] = field(default_factory=list)
    working_directory: str = field(default_factory=os.getcwd)
    auth_token: Optional[str] = None
    min_verbosity: int = MIN_VERBOSITY
    rules_path: Path = DEFAULT_RULES_PATH
    strict_rules: bool = False
    restart_delay: float = RESTART_DELAY_SECONDS
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def parse_spawn_args(raw: Optional[str]) -> list[str]:
    """Split an argument string on whitespace, honoring double quotes.

    Quotes are stripped from the resulting arguments:
        parse_spawn_args('-S "my file" -v 1') -> ['-S', 'my file', '-v', '1']
    """
    if not raw:
        return []
    return [arg.replace('"', '') for arg in _ARG_PATTERN.findall(raw)]


def ensure_verbosity(args: list[str], minimum: int = MIN_VERBOSITY) -> list[str]:
    """Return a copy of args with the verbosity flag raised to at least minimum.

    A missing flag is appended as ``-v <minimum>``. A flag whose value is
    absent, non-numeric or lower than minimum has its value replaced.
    """
    result = list(args)
    found = False

    for i, arg in enumerate(result):
        if arg not in VERBOSITY_FLAGS:
            continue
        found = True

        current = result[i + 1] if i + 1 < len(result) else None
        try:
            level = int(current)
        except (TypeError, ValueError):
            level = None

        if level is None or level < minimum:
            logger.info(f"Verbosity level ({current}) is below minimum ({minimum}). Updating it.")
            if current is None:
                result.append(str(minimum))
            else:
                result[i + 1] = str(minimum)

    if not found:
        logger.info(f"Verbosity not set. Adding minimum verbosity: {minimum}")
        result.extend(['-v', str(minimum)])

    return result


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def load_config() -> HubConfig:
    """Build a HubConfig from environment variables.

    The decoder argument list is preprocessed with ensure_verbosity so the
    supervisor always launches with at least the configured minimum.
    """
    min_verbosity = int(os.getenv('MIN_VERBOSITY', str(MIN_VERBOSITY)))
    spawn_args = ensure_verbosity(parse_spawn_args(os.getenv('OP25_ARGS')), min_verbosity)

    return HubConfig(
        spawn_command=os.getenv('OP25_COMMAND') or None,
        spawn_args=spawn_args,
        working_directory=os.getenv('OP25_CWD') or os.getcwd(),
        auth_token=os.getenv('TOKEN') or None,
        min_verbosity=min_verbosity,
        rules_path=Path(os.getenv('RULES_PATH', str(DEFAULT_RULES_PATH))),
        strict_rules=_env_bool('STRICT_RULES'),
        restart_delay=float(os.getenv('RESTART_DELAY', str(RESTART_DELAY_SECONDS))),
        host=os.getenv('HOST', DEFAULT_HOST),
        port=int(os.getenv('PORT', str(DEFAULT_PORT))),
    )

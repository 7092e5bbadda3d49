"""Configuration loading from environment variables and .env files."""

import logging
import os
from pathlib import Path
from typing import Optional

from .patterns import DEFAULT_PATTERNS, TranscriptPatterns, load_patterns

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "text"
DEFAULT_MCP_PORT = 8979
CONFIG_KEYS = ['PATTERNS_FILE', 'DEFAULT_FORMAT', 'FASTMCP_PORT', 'LOG_LEVEL']


def load_config() -> dict:
    """Load config from environment variables and .env file.

    Environment variables take precedence over .env file values.
    """
    paths = [
        os.environ.get('BC_TEST_ANALYZER_CONFIG'),
        Path.cwd() / '.env',
        Path(__file__).parent.parent / '.env',
    ]
    config = {}
    for p in paths:
        if p and Path(p).is_file():
            try:
                for line in Path(p).read_text().splitlines():
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        config[key.strip()] = value.strip()
                break
            except OSError as e:
                logger.warning(f"Could not read config file {p}: {e}")

    for key in CONFIG_KEYS:
        env_value = os.environ.get(key)
        if env_value is not None:
            config[key] = env_value

    return config


def get_patterns_file() -> Optional[Path]:
    value = load_config().get('PATTERNS_FILE')
    return Path(value).expanduser() if value else None


def get_default_format() -> str:
    value = load_config().get('DEFAULT_FORMAT', DEFAULT_FORMAT)
    return value if value in ('text', 'json') else DEFAULT_FORMAT


def get_mcp_port() -> int:
    try:
        return int(load_config().get('FASTMCP_PORT', DEFAULT_MCP_PORT))
    except ValueError:
        logger.warning(f"Invalid FASTMCP_PORT, using {DEFAULT_MCP_PORT}")
        return DEFAULT_MCP_PORT


def get_log_level() -> str:
    level = load_config().get('LOG_LEVEL', 'INFO').upper()
    return level if level in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL') else 'INFO'


def get_patterns(patterns_file: Optional[Path] = None) -> TranscriptPatterns:
    """Patterns from the given file, else PATTERNS_FILE, else the defaults.

    Raises:
        PatternConfigError: If the patterns file is unreadable or invalid
    """
    path = patterns_file or get_patterns_file()
    if not path:
        return DEFAULT_PATTERNS
    logger.debug(f"Loading transcript patterns from {path}")
    return load_patterns(path)

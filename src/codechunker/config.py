"""Environment driven settings for the chunker."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_MAX_TOKENS = 2048
DEFAULT_OVERLAP_TOKENS = 256
DEFAULT_MAX_FILE_SIZE = 100 * 1024


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _languages_dir() -> Optional[Path]:
    value = os.getenv("CODECHUNKER_LANGUAGES_DIR")
    return Path(value) if value else None


def get_env_config() -> Dict[str, Any]:
    """Get configuration from environment variables."""
    return {
        "languages_dir": _languages_dir(),
        "max_tokens": int(os.getenv("CODECHUNKER_MAX_TOKENS", str(DEFAULT_MAX_TOKENS))),
        "overlap_tokens": int(
            os.getenv("CODECHUNKER_OVERLAP_TOKENS", str(DEFAULT_OVERLAP_TOKENS))
        ),
        "max_file_size": int(
            os.getenv("CODECHUNKER_MAX_FILE_SIZE", str(DEFAULT_MAX_FILE_SIZE))
        ),
        "parser_pool_size": int(os.getenv("CODECHUNKER_PARSER_POOL_SIZE", "1")),
        "skip_minified": _env_flag("CODECHUNKER_SKIP_MINIFIED", "true"),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
    }

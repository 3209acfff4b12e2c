"""Heuristics for spotting minified or bundled files.

Minified sources parse into a handful of enormous nodes that are useless as
embedding units, so the registry hands them to the fallback chunker.
"""

from dataclasses import dataclass

MINIFIED_EXTENSIONS = (".min.js", ".min.css", ".bundle.js", ".bundle.css")


@dataclass(frozen=True)
class MinifiedThresholds:
    """Detection thresholds."""

    max_avg_line_length: int = 500
    max_single_line_size: int = 10 * 1024
    min_whitespace_ratio: float = 0.05
    min_size_for_whitespace_check: int = 1024


DEFAULT_THRESHOLDS = MinifiedThresholds()


def is_minified(
    content: bytes, path: str, thresholds: MinifiedThresholds = DEFAULT_THRESHOLDS
) -> bool:
    """Detect if file content appears to be minified/compressed code."""
    if not content:
        return False

    if ".min." in path.lower():
        return True

    line_count = content.count(b"\n") or 1

    if len(content) // line_count > thresholds.max_avg_line_length:
        return True

    if line_count == 1 and len(content) > thresholds.max_single_line_size:
        return True

    if len(content) >= thresholds.min_size_for_whitespace_check:
        whitespace = content.count(b" ") + content.count(b"\t") + content.count(b"\n")
        if whitespace / len(content) < thresholds.min_whitespace_ratio:
            return True

    return False


def is_minified_extension(path: str) -> bool:
    """Check if the path has a known minified extension."""
    return path.lower().endswith(MINIFIED_EXTENSIONS)

"""Approximate token accounting for embedding size limits.

Token counts are estimated from character length. Code tokenises at roughly
four characters per token; the estimates below err on the small side so that
chunks are split early rather than rejected by the embedding model.
"""

CHARS_PER_TOKEN = 3.5

# Used when converting a token budget into a safe character allowance
CONSERVATIVE_CHARS_PER_TOKEN = 3.2


def estimate_tokens(text: str) -> int:
    """Estimate the token count of a piece of text."""
    if not text:
        return 0
    return int(len(text) / CHARS_PER_TOKEN)


def estimate_chars(tokens: int) -> int:
    """Convert a token count into an approximate character count."""
    return int(tokens * CHARS_PER_TOKEN)


def max_chars_for_tokens(tokens: int) -> int:
    """Maximum characters that safely fit in the given token budget."""
    return int(tokens * CONSERVATIVE_CHARS_PER_TOKEN)

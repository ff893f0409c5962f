"""
Token estimation for the context budget check.

The default estimator is characters / 4, rounded up. Exact counts are
available through tiktoken with TOKENIZER=tiktoken:<encoding>.
"""

import math
from functools import lru_cache
from typing import Callable

import tiktoken

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.errors import ConfigTypeMismatch

TokenCounter = Callable[[str], int]

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@lru_cache(maxsize=8)
def _encoding(name: str):
    return tiktoken.get_encoding(name)


def tiktoken_counter(encoding_name: str = "cl100k_base") -> TokenCounter:
    """Counter backed by a tiktoken encoding (loaded once per name)."""
    def count(text: str) -> int:
        return len(_encoding(encoding_name).encode(text, disallowed_special=()))
    return count


def resolve_token_counter(config: ConfigurationStore) -> TokenCounter:
    """
    Pick the estimator named by the TOKENIZER setting.

    Raises:
        ConfigTypeMismatch: If the setting names an unknown tokenizer
    """
    raw = config.get_string("TOKENIZER").strip()
    if raw.lower() == "chars":
        return estimate_tokens
    kind, _, encoding = raw.partition(":")
    if kind.lower() == "tiktoken":
        return tiktoken_counter(encoding.strip() or "cl100k_base")
    raise ConfigTypeMismatch("TOKENIZER", "chars|tiktoken:<encoding>", raw)

"""Token counting with the cl100k_base byte-pair encoding."""

from __future__ import annotations

from functools import lru_cache

import tiktoken

from simulator.logging_utils import get_logger, log_extra

logger = get_logger(__name__)

ENCODING_NAME = "cl100k_base"


@lru_cache(maxsize=None)
def _encoding(name: str) -> tiktoken.Encoding:
    return tiktoken.get_encoding(name)


class Tokenizer:
    def __init__(self, encoding_name: str = ENCODING_NAME) -> None:
        self.encoding_name = encoding_name

    def warm_up(self) -> bool:
        """Load the encoding now so the first request does not pay for it."""
        try:
            _encoding(self.encoding_name)
        except Exception as exc:
            logger.warning(
                "Tokenizer warm-up failed",
                extra=log_extra(encoding=self.encoding_name, error=str(exc)),
            )
            return False
        return True

    def count_tokens(self, text: str) -> int:
        """Number of tokens in ``text``; any encoder failure counts as zero."""
        if not text:
            return 0
        try:
            encoding = _encoding(self.encoding_name)
            return len(encoding.encode(text, allowed_special="all"))
        except Exception as exc:
            logger.warning(
                "Tokenization failed, counting zero tokens",
                extra=log_extra(encoding=self.encoding_name, error=str(exc)),
            )
            return 0


__all__ = ["Tokenizer", "ENCODING_NAME"]

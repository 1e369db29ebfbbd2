"""Filler content length guarantees and token counting."""

from __future__ import annotations

import pytest

import simulator.tokenizer as tokenizer_module
from simulator.content import ContentGenerator
from simulator.tokenizer import Tokenizer


@pytest.mark.parametrize("length", [1, 2, 5, 6, 7, 10, 37, 250, 1000, 4097])
def test_generate_exact_length(rng, length: int) -> None:
    text = ContentGenerator(rng=rng).generate(length)
    assert len(text) == length
    assert len(text.encode("utf-8")) == length


def test_generate_zero_is_empty(rng) -> None:
    assert ContentGenerator(rng=rng).generate(0) == ""


def test_generated_text_has_words(rng) -> None:
    text = ContentGenerator(rng=rng).generate(200)
    assert len(text.split()) > 10


def test_resolve_fixed_length(rng) -> None:
    assert ContentGenerator(42, rng=rng).resolve_length() == 42


def test_resolve_range_stays_inside(rng) -> None:
    generator = ContentGenerator((10, 20), rng=rng)
    values = {generator.resolve_length() for _ in range(300)}
    assert values <= set(range(10, 21))
    assert min(values) == 10 and max(values) == 20


def test_resolve_degenerate_range(rng) -> None:
    assert ContentGenerator((7, 7), rng=rng).resolve_length() == 7


def test_empty_text_has_no_tokens() -> None:
    assert Tokenizer().count_tokens("") == 0


def test_token_count_is_deterministic() -> None:
    tokenizer = Tokenizer()
    text = "Lorem ipsum dolor sit amet, consectetur adipiscing elit."
    assert tokenizer.count_tokens(text) == tokenizer.count_tokens(text)


def test_tokenizer_failure_counts_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(name):
        raise RuntimeError("vocabulary unavailable")

    monkeypatch.setattr(tokenizer_module, "_encoding", broken)
    assert Tokenizer().count_tokens("hello world") == 0


def test_warm_up_loads_encoding_once(monkeypatch: pytest.MonkeyPatch) -> None:
    loaded = []

    class FakeEncoding:
        def encode(self, text, allowed_special=()):
            return text.split()

    def fake_get_encoding(name):
        loaded.append(name)
        return FakeEncoding()

    tokenizer_module._encoding.cache_clear()
    monkeypatch.setattr(tokenizer_module.tiktoken, "get_encoding", fake_get_encoding)
    try:
        tokenizer = Tokenizer()
        assert tokenizer.warm_up() is True
        assert loaded == ["cl100k_base"]
        assert tokenizer.count_tokens("two words") == 2
        assert loaded == ["cl100k_base"]
    finally:
        tokenizer_module._encoding.cache_clear()


def test_warm_up_failure_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(name):
        raise RuntimeError("vocabulary unavailable")

    monkeypatch.setattr(tokenizer_module, "_encoding", broken)
    assert Tokenizer().warm_up() is False

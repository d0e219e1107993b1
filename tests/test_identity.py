from __future__ import annotations

import pytest

from lastseen.data.identity import apply_identity, normalize_identity


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("  @john doe ", "@johndoe"),
        ("@ jane", "@jane"),
        ("+380 67 123 45 67", "+380671234567"),
        ("", ""),
        ("   ", ""),
        (None, ""),
    ],
)
def test_normalize_identity(raw, expected) -> None:  # type: ignore[no-untyped-def]
    assert normalize_identity(raw) == expected


def test_apply_identity_only_on_change() -> None:
    assert apply_identity(" @john ", "@john") is None
    assert apply_identity("  ", "@john") is None
    assert apply_identity("@ann", "@john") == "@ann"

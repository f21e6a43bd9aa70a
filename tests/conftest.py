"""Shared fixtures for textrankminer tests."""

from typing import Callable, List

import pytest

from textrankminer.tokens import Token

from .helpers import make_token


@pytest.fixture
def tok() -> Callable[..., Token]:
    return make_token


@pytest.fixture
def quick_brown_fox() -> List[Token]:
    return [
        make_token("quick", "JJ", 0, 5),
        make_token("brown", "JJ", 6, 11),
        make_token("fox", "NN", 12, 15),
    ]

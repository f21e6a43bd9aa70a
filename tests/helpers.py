"""Token builders shared by the test modules."""

from typing import List, Optional, Sequence, Tuple

from textrankminer.tokens import Token, make_tag_key


def make_token(
    word: str,
    pos: Optional[str],
    start: int,
    end: Optional[int] = None,
    sentence: Optional[int] = None,
    language: str = "en",
) -> Token:
    return Token(
        id=make_tag_key(word, language),
        surface_form=word,
        start_position=start,
        end_position=start + len(word) if end is None else end,
        language=language,
        parts_of_speech=frozenset({pos}) if pos else frozenset(),
        sentence_index=sentence,
    )


def lay_out(
    words: Sequence[Tuple[str, Optional[str]]],
    start: int = 0,
    sentence: Optional[int] = None,
) -> List[Token]:
    """Tokens for ``words`` separated by single spaces, starting at ``start``."""
    tokens = []
    cursor = start
    for word, pos in words:
        tokens.append(make_token(word, pos, cursor, sentence=sentence))
        cursor += len(word) + 1
    return tokens

# -------------------------
# Author: Jeevan Reji (modified)
# Date: 2026-10-19
# -------------------------
import random
from typing import Iterable, Iterator, Optional, Tuple


class WordList:
    """
    Read-only word list shared by every worker of a run.
    Backed by a tuple so indexing is O(1) and nothing can append to it.
    """
    __slots__ = ("_words",)

    def __init__(self, words: Iterable[str]):
        object.__setattr__(self, "_words", tuple(words))

    def __setattr__(self, name, value):
        raise AttributeError("WordList is immutable")

    def __len__(self) -> int:
        return len(self._words)

    def __getitem__(self, index: int) -> str:
        return self._words[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self._words)

    def __repr__(self) -> str:
        return f"WordList({len(self._words)} words)"

    def random_word(self, rng: Optional[random.Random] = None) -> Tuple[int, str]:
        if not self._words:
            raise IndexError("cannot pick from an empty word list")
        rng = rng or random
        idx = rng.randrange(len(self._words))
        return idx, self._words[idx]

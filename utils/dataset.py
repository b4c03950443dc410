import json, threading
from typing import Optional
import requests

from common.wordlist import WordList


class DatasetError(RuntimeError):
    pass


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _fetch(source: str, timeout: float):
    try:
        r = requests.get(source, timeout=timeout)
        r.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise DatasetError(f"could not fetch word list from {source}: {e}") from e
    try:
        return r.json()
    except ValueError as e:
        raise DatasetError(f"word list at {source} is not valid JSON: {e}") from e


def _read(source: str):
    try:
        with open(source, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise DatasetError(f"could not read word list {source}: {e}") from e
    except ValueError as e:
        raise DatasetError(f"word list {source} is not valid JSON: {e}") from e


def parse_words(doc, source: str = "<document>") -> WordList:
    """Object -> its top-level keys (values ignored); array -> its items."""
    if isinstance(doc, dict):
        words = list(doc.keys())
    elif isinstance(doc, list):
        bad = [w for w in doc if not isinstance(w, str)]
        if bad:
            raise DatasetError(f"word list {source} contains non-string items, e.g. {bad[0]!r}")
        words = doc
    else:
        raise DatasetError(f"word list {source} must be a JSON object or array, got {type(doc).__name__}")
    if not words:
        raise DatasetError(f"word list {source} is empty")
    return WordList(words)


def load_words(source: str, timeout: float = 30.0) -> WordList:
    doc = _fetch(source, timeout) if _is_url(source) else _read(source)
    return parse_words(doc, source)


class DatasetLoader:
    """
    Loads the word list for one run. The first load() does the read,
    every later call (from any thread) gets the same WordList back.
    """
    def __init__(self, source: str, timeout: float = 30.0):
        self.source = source
        self.timeout = timeout
        self.load_count = 0
        self._words: Optional[WordList] = None
        self._lock = threading.Lock()

    def load(self) -> WordList:
        with self._lock:
            if self._words is None:
                self.load_count += 1
                self._words = load_words(self.source, self.timeout)
                print(f"[Dataset] Loaded {len(self._words)} words from {self.source}")
            return self._words

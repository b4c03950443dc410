import json
import threading

import pytest
import requests

from utils import dataset
from utils.dataset import DatasetError, DatasetLoader, load_words, parse_words


def write(tmp_path, name, text):
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return str(p)


def test_object_keys_become_words(tmp_path):
    path = write(tmp_path, "words.json", json.dumps({"apple": 1, "banana": 1, "cherry": 1}))
    words = load_words(path)
    assert list(words) == ["apple", "banana", "cherry"]


def test_flat_array(tmp_path):
    path = write(tmp_path, "words.json", json.dumps(["one", "two"]))
    assert list(load_words(path)) == ["one", "two"]


@pytest.mark.parametrize("doc", ["{not json", json.dumps(42), json.dumps([]), json.dumps({}), json.dumps(["ok", 3])])
def test_bad_documents_are_rejected(tmp_path, doc):
    path = write(tmp_path, "bad.json", doc)
    with pytest.raises(DatasetError):
        load_words(path)


def test_missing_file(tmp_path):
    with pytest.raises(DatasetError):
        load_words(str(tmp_path / "nope.json"))


class _Resp:
    def __init__(self, status, payload):
        self.status_code = status
        self.payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


def test_url_source(monkeypatch):
    seen = []

    def fake_get(url, timeout):
        seen.append(url)
        return _Resp(200, {"hello": 1, "world": 1})

    monkeypatch.setattr(dataset.requests, "get", fake_get)
    words = load_words("https://example.com/words.json")
    assert list(words) == ["hello", "world"]
    assert seen == ["https://example.com/words.json"]


def test_url_http_error(monkeypatch):
    monkeypatch.setattr(dataset.requests, "get", lambda url, timeout: _Resp(404, None))
    with pytest.raises(DatasetError):
        load_words("http://example.com/missing.json")


def test_url_unreachable(monkeypatch):
    def boom(url, timeout):
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(dataset.requests, "get", boom)
    with pytest.raises(DatasetError):
        load_words("http://example.com/words.json")


def test_url_malformed_json(monkeypatch):
    monkeypatch.setattr(dataset.requests, "get", lambda url, timeout: _Resp(200, ValueError("bad json")))
    with pytest.raises(DatasetError):
        load_words("http://example.com/words.json")


def test_parse_words_rejects_scalars():
    with pytest.raises(DatasetError):
        parse_words("just a string")


def test_loader_reads_once_across_threads(tmp_path, monkeypatch):
    path = write(tmp_path, "words.json", json.dumps(["a", "b", "c"]))
    calls = []
    real = dataset.load_words

    def counting(source, timeout=30.0):
        calls.append(source)
        return real(source, timeout)

    monkeypatch.setattr(dataset, "load_words", counting)
    loader = DatasetLoader(path)
    results = []
    threads = [threading.Thread(target=lambda: results.append(loader.load())) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(calls) == 1
    assert loader.load_count == 1
    assert all(r is results[0] for r in results)

import json
from urllib.parse import parse_qs, urlsplit

import pytest

from client import search_load
from client.search_load import LoadRun
from common.config import ClosedScenario, OpenScenario, RunConfig
from utils.dataset import DatasetError, DatasetLoader
from utils.load_generator import SearchWorkload


def make_config(source, scenario, **kw):
    kw.setdefault("include_liveness", False)
    kw.setdefault("inter_request_delay", 0.0)
    return RunConfig(scenario=scenario, target_base_url="http://target.test", dataset_source=source, **kw)


def test_run_loads_dataset_once_for_many_workers(tmp_path, adapter, session_factory):
    path = tmp_path / "words.json"
    path.write_text(json.dumps({"hello": 1, "world": 1}), encoding="utf-8")
    cfg = make_config(str(path), ClosedScenario(workers=8, loop_delay=0.05, duration=0.3))
    loader = DatasetLoader(cfg.dataset_source)
    run = LoadRun(cfg, loader=loader,
                  workload=SearchWorkload.from_config(cfg, session_factory=session_factory))
    summary = run.run()

    assert loader.load_count == 1
    assert summary["requests"]["search"]["count"] == len(adapter.sent)
    assert summary["requests"]["search"]["errors"] == 0
    for req in adapter.sent:
        assert parse_qs(urlsplit(req.url).query)["q"][0] in ("hello", "world")


def test_malformed_dataset_aborts_before_any_request(tmp_path, adapter, session_factory):
    path = tmp_path / "words.json"
    path.write_text("{broken", encoding="utf-8")
    cfg = make_config(str(path), OpenScenario(10.0, 1.0, 2))
    run = LoadRun(cfg, workload=SearchWorkload.from_config(cfg, session_factory=session_factory))
    with pytest.raises(DatasetError):
        run.run()
    assert run.scheduler is None
    assert adapter.sent == []
    assert run.metrics.total_requests == 0


def test_main_exits_non_zero_on_bad_dataset(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("DATASET_SOURCE", str(tmp_path / "missing.json"))
    monkeypatch.delenv("SPAWN_TARGET", raising=False)
    assert search_load.main([]) == 1
    assert "Setup failed" in capsys.readouterr().out


def test_main_exits_non_zero_on_bad_config(monkeypatch, capsys):
    assert search_load.main(["ramping"]) == 1
    assert "Bad configuration" in capsys.readouterr().out

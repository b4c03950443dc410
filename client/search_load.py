# -------------------------
# Author: Jeevan Reji (modified)
# Date: 2026-10-19
# -------------------------
"""
Search load runner.

Usage:
    python -m client.search_load            # scenario from SCENARIO env (default closed)
    python -m client.search_load open       # constant arrival rate

    SCENARIO=open RATE_PER_SEC=50 DURATION_SEC=60 PRE_ALLOCATED_WORKERS=20 \
    TARGET_BASE_URL=http://localhost:8080 python -m client.search_load

    # spin up the local search target first
    SPAWN_TARGET=1 TARGET_PORT=8080 python -m client.search_load
"""
import os, sys

from common.config import ConfigError, from_env
from utils.dataset import DatasetError, DatasetLoader
from utils.load_generator import SearchWorkload
from utils.metrics import Metrics, format_summary
from utils.scheduler import build_scheduler
from utils.target_process import TargetProcess


class LoadRun:
    """setup() loads the word list once; run() drives the scheduler and returns the summary."""

    def __init__(self, config, loader=None, metrics=None, workload=None):
        self.config = config
        self.loader = loader or DatasetLoader(config.dataset_source, timeout=config.request_timeout)
        self.metrics = metrics or Metrics()
        self.workload = workload
        self.words = None
        self.scheduler = None

    def setup(self):
        # DatasetError propagates: no scheduler, no requests
        self.words = self.loader.load()
        if self.workload is None:
            self.workload = SearchWorkload.from_config(self.config, metrics=self.metrics)
        elif getattr(self.workload, "metrics", None) is None:
            self.workload.metrics = self.metrics
        self.scheduler = build_scheduler(self.config, self.workload, self.words, self.metrics)
        return self.words

    def run(self):
        if self.scheduler is None:
            self.setup()
        self.metrics.reset_clock()
        try:
            self.scheduler.run()
        except KeyboardInterrupt:
            print("\n[SearchLoad] Interrupted, stopping workers")
            self.scheduler.stop()
        finally:
            close = getattr(self.workload, "close", None)
            if close is not None:
                close()
        return self.metrics.summary()

    def stop(self):
        if self.scheduler is not None:
            self.scheduler.stop()


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    try:
        config = from_env(scenario_name=argv[0] if argv else None)
    except ConfigError as e:
        print(f"[SearchLoad] Bad configuration: {e}")
        return 1

    target = None
    if os.environ.get("SPAWN_TARGET", "0") == "1":
        target = TargetProcess(int(os.environ.get("TARGET_PORT", 8080)))
        target.start()
        config = config._replace(target_base_url=target.base_url)

    print(f"[SearchLoad] scenario={config.scenario_name} target={config.target_base_url} "
          f"dataset={config.dataset_source}")
    run = LoadRun(config)
    try:
        try:
            run.setup()
        except DatasetError as e:
            print(f"[SearchLoad] Setup failed, no load generated: {e}")
            return 1
        summary = run.run()
    finally:
        if target is not None:
            target.stop()

    print("\n=== Search Load Summary ===")
    print(format_summary(summary))
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Closed model: N worker threads, each runs an iteration then waits loop_delay.
Open model: a ticker starts iterations at a fixed rate on a bounded pool,
independent of whether earlier iterations have finished.
"""
import random, threading, time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Optional

from common.config import ClosedScenario, OpenScenario


def worker_rng(seed: Optional[int], worker_id: int) -> random.Random:
    if seed is None:
        return random.Random(random.SystemRandom().getrandbits(64) ^ worker_id)
    return random.Random(f"{seed}:{worker_id}")


class _BaseScheduler:
    def __init__(self, workload, words, metrics, seed: Optional[int] = None, grace_period: float = 5.0):
        self.workload = workload
        self.words = words
        self.metrics = metrics
        self.seed = seed
        self.grace_period = grace_period
        self.stop_evt = threading.Event()

    def stop(self):
        self.stop_evt.set()

    def _run_one(self, rng: random.Random) -> bool:
        self.metrics.record_iteration_started()
        try:
            records = self.workload.run_iteration(self.words, rng)
        except Exception as e:
            print(f"[Scheduler] Iteration failed: {e!r}")
            self.metrics.record_iteration(False)
            return False
        ok = all(r.ok for r in records)
        self.metrics.record_iteration(ok)
        return ok


class ClosedLoopScheduler(_BaseScheduler):
    def __init__(self, workload, words, scenario: ClosedScenario, metrics, seed=None, grace_period=5.0):
        super().__init__(workload, words, metrics, seed, grace_period)
        self.scenario = scenario
        self.per_worker = [0] * scenario.workers

    def _worker(self, worker_id: int, deadline: Optional[float]):
        rng = worker_rng(self.seed, worker_id)
        while not self.stop_evt.is_set():
            if deadline is not None and time.monotonic() >= deadline:
                break
            self._run_one(rng)
            self.per_worker[worker_id] += 1
            if deadline is not None:
                pause = min(self.scenario.loop_delay, max(0.0, deadline - time.monotonic()))
            else:
                pause = self.scenario.loop_delay
            if self.stop_evt.wait(pause):
                break

    def run(self):
        sc = self.scenario
        deadline = None if sc.duration is None else time.monotonic() + sc.duration
        print(f"[Scheduler] closed model: workers={sc.workers} loop_delay={sc.loop_delay}s "
              f"duration={'unbounded' if sc.duration is None else f'{sc.duration}s'}")
        threads = []
        for i in range(sc.workers):
            t = threading.Thread(target=self._worker, args=(i, deadline), name=f"vu-{i}", daemon=True)
            t.start()
            threads.append(t)
        try:
            while any(t.is_alive() for t in threads):
                if deadline is not None and time.monotonic() >= deadline:
                    break
                if self.stop_evt.wait(0.2):
                    break
        finally:
            self.stop_evt.set()
            grace_end = time.monotonic() + self.grace_period
            for t in threads:
                t.join(timeout=max(0.0, grace_end - time.monotonic()))
            leftover = sum(1 for t in threads if t.is_alive())
            if leftover:
                print(f"[Scheduler] {leftover} worker(s) still busy after {self.grace_period}s grace period")
                self.metrics.record_interrupted(leftover)
            # late reports from those workers are not part of this run
            self.metrics.close()


class ArrivalRateScheduler(_BaseScheduler):
    def __init__(self, workload, words, scenario: OpenScenario, metrics, seed=None, grace_period=5.0):
        super().__init__(workload, words, metrics, seed, grace_period)
        self.scenario = scenario
        self.slots = threading.BoundedSemaphore(scenario.pre_allocated_workers)
        self.arrivals = 0
        self._local = threading.local()
        self._rng_ids = 0
        self._rng_lock = threading.Lock()

    def _thread_rng(self) -> random.Random:
        rng = getattr(self._local, "rng", None)
        if rng is None:
            with self._rng_lock:
                wid = self._rng_ids
                self._rng_ids += 1
            rng = self._local.rng = worker_rng(self.seed, wid)
        return rng

    def _iteration(self):
        try:
            self._run_one(self._thread_rng())
        finally:
            self.slots.release()

    def _acquire_slot(self) -> bool:
        if self.slots.acquire(blocking=False):
            return True
        if self.scenario.overrun_policy == "queue" and self.scenario.max_queue_wait > 0:
            if self.slots.acquire(timeout=self.scenario.max_queue_wait):
                self.metrics.record_overrun("delayed")
                return True
        self.metrics.record_overrun("dropped")
        return False

    def run(self):
        sc = self.scenario
        interval = 1.0 / sc.rate
        print(f"[Scheduler] open model: rate={sc.rate}/s duration={sc.duration}s "
              f"slots={sc.pre_allocated_workers} overrun_policy={sc.overrun_policy}")
        pool = ThreadPoolExecutor(max_workers=sc.pre_allocated_workers, thread_name_prefix="vu")
        futures = []
        start = time.monotonic()
        end = start + sc.duration
        try:
            while not self.stop_evt.is_set():
                # arrival i is due at start + i*interval, so lateness does not accumulate
                due = start + self.arrivals * interval
                if due >= end:
                    break
                now = time.monotonic()
                if due > now and self.stop_evt.wait(due - now):
                    break
                self.arrivals += 1
                if not self._acquire_slot():
                    continue
                futures.append(pool.submit(self._iteration))
                if len(futures) > 1024:
                    futures = [f for f in futures if not f.done()]
        finally:
            _, pending = wait(futures, timeout=self.grace_period)
            if pending:
                print(f"[Scheduler] {len(pending)} iteration(s) still in flight after {self.grace_period}s grace period")
                self.metrics.record_interrupted(len(pending))
                for f in pending:
                    f.cancel()
            pool.shutdown(wait=False, cancel_futures=True)
            self.metrics.close()


def build_scheduler(config, workload, words, metrics):
    if isinstance(config.scenario, OpenScenario):
        cls = ArrivalRateScheduler
    else:
        cls = ClosedLoopScheduler
    return cls(workload, words, config.scenario, metrics, seed=config.seed, grace_period=config.grace_period)

import threading, statistics, time
from collections import Counter, defaultdict

OVERRUN_KINDS = ("dropped", "delayed")


class _RequestStats:
    def __init__(self):
        self.count = 0
        self.errors = 0
        self.statuses = Counter()
        self.latencies = []


class Metrics:
    """
    Collects what a run produced: one entry per request, iteration
    outcomes, and arrivals the open model could not start on time.
    """
    def __init__(self):
        self.lock = threading.Lock()
        self.requests = defaultdict(_RequestStats)
        self.iterations_started = 0
        self.iterations_completed = 0
        self.iterations_failed = 0
        self.iterations_interrupted = 0
        self.overruns = Counter()
        self.closed = False
        self.late_records = 0
        self.t_end = None
        self.t0 = time.monotonic()

    def reset_clock(self):
        with self.lock:
            self.t0 = time.monotonic()

    def close(self):
        """
        Freeze the numbers at the end of a run. Workers that outlived the
        grace period are already counted as interrupted; whatever they
        report afterwards only bumps late_records.
        """
        with self.lock:
            self.closed = True
            self.t_end = time.monotonic()

    def _late(self) -> bool:
        # caller holds the lock
        if self.closed:
            self.late_records += 1
        return self.closed

    def record_request(self, rec):
        with self.lock:
            if self._late():
                return
            st = self.requests[rec.name]
            st.count += 1
            st.latencies.append(rec.latency)
            # status None = no response at all (connection error, timeout)
            st.statuses[rec.status if rec.status is not None else "error"] += 1
            if not rec.ok:
                st.errors += 1

    def record_iteration_started(self):
        with self.lock:
            if self._late():
                return
            self.iterations_started += 1

    def record_iteration(self, ok: bool):
        with self.lock:
            if self._late():
                return
            if ok:
                self.iterations_completed += 1
            else:
                self.iterations_failed += 1

    def record_overrun(self, kind: str):
        if kind not in OVERRUN_KINDS:
            raise ValueError(f"unknown overrun kind {kind!r}")
        with self.lock:
            self.overruns[kind] += 1

    def record_interrupted(self, n: int = 1):
        with self.lock:
            self.iterations_interrupted += n

    @property
    def total_requests(self) -> int:
        with self.lock:
            return sum(st.count for st in self.requests.values())

    def _stats(self, xs):
        if not xs:
            return {"avg": None, "p50": None, "p95": None, "max": None}
        xs_sorted = sorted(xs)
        p50_idx = int(0.50 * (len(xs_sorted) - 1))
        p95_idx = max(0, int(0.95 * (len(xs_sorted) - 1)))
        return {
            "avg": statistics.mean(xs_sorted),
            "p50": xs_sorted[p50_idx],
            "p95": xs_sorted[p95_idx],
            "max": xs_sorted[-1],
        }

    def summary(self):
        with self.lock:
            end = self.t_end if self.t_end is not None else time.monotonic()
            elapsed = end - self.t0
            reqs = {}
            for name, st in sorted(self.requests.items()):
                reqs[name] = {
                    "count": st.count,
                    "errors": st.errors,
                    "throughput": st.count / elapsed if elapsed > 0 else 0.0,
                    "statuses": {str(k): v for k, v in sorted(st.statuses.items(), key=lambda kv: str(kv[0]))},
                    "latency": self._stats(st.latencies),
                }
            return {
                "elapsed_sec": elapsed,
                "requests": reqs,
                "iterations": {
                    "started": self.iterations_started,
                    "completed": self.iterations_completed,
                    "failed": self.iterations_failed,
                    "interrupted": self.iterations_interrupted,
                },
                "overruns": {k: self.overruns.get(k, 0) for k in OVERRUN_KINDS},
            }


def _ms(v):
    return None if v is None else round(v * 1000, 1)


def format_summary(s) -> str:
    it = s["iterations"]
    lines = [
        f"Elapsed: {s['elapsed_sec']:.2f}s",
        f"Iterations: started={it['started']} completed={it['completed']} "
        f"failed={it['failed']} interrupted={it['interrupted']}",
        f"Overruns: dropped={s['overruns']['dropped']} delayed={s['overruns']['delayed']}",
    ]
    for name, r in s["requests"].items():
        lat = r["latency"]
        lines.append(
            f"{name}: count={r['count']} errors={r['errors']} thr={r['throughput']:.1f}/s "
            f"lat_avg={_ms(lat['avg'])} ms p50={_ms(lat['p50'])} ms p95={_ms(lat['p95'])} ms "
            f"max={_ms(lat['max'])} ms statuses={r['statuses']}"
        )
    return "\n".join(lines)

"""
Run configuration, read from environment variables the same way the
benchmark runners read DURATION_SEC / TARGET_RPS.

SCENARIO=closed WORKERS=5 LOOP_DELAY_SEC=1 python -m client.search_load
SCENARIO=open RATE_PER_SEC=50 DURATION_SEC=60 PRE_ALLOCATED_WORKERS=20 python -m client.search_load
"""
import math, os
from typing import Mapping, NamedTuple, Optional, Union

DEFAULT_DATASET_SOURCE = "https://raw.githubusercontent.com/dwyl/english-words/master/words_dictionary.json"
DEFAULT_TARGET_BASE_URL = "http://localhost:8080"

SCENARIOS = ("closed", "open")
OVERRUN_POLICIES = ("drop", "queue")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class ConfigError(ValueError):
    pass


class ClosedScenario(NamedTuple):
    workers: int
    loop_delay: float
    duration: Optional[float]  # None = until stopped


class OpenScenario(NamedTuple):
    rate: float
    duration: float
    pre_allocated_workers: int
    overrun_policy: str = "drop"
    max_queue_wait: float = 0.1


class RunConfig(NamedTuple):
    scenario: Union[ClosedScenario, OpenScenario]
    target_base_url: str = DEFAULT_TARGET_BASE_URL
    dataset_source: str = DEFAULT_DATASET_SOURCE
    discard_response_bodies: bool = False
    reuse_connections: bool = True
    include_liveness: bool = True
    inter_request_delay: float = 1.0
    request_timeout: float = 10.0
    grace_period: float = 5.0
    seed: Optional[int] = None

    @property
    def scenario_name(self) -> str:
        return "open" if isinstance(self.scenario, OpenScenario) else "closed"


def _get(env: Mapping[str, str], key: str, default):
    raw = env.get(key)
    if raw is None:
        return default
    return raw.strip()


def _float(env, key, default: float) -> float:
    raw = _get(env, key, default)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {raw!r}")
    if not math.isfinite(value):
        raise ConfigError(f"{key} must be a finite number, got {raw!r}")
    return value


def _int(env, key, default: int) -> int:
    raw = _get(env, key, default)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {raw!r}")


def _bool(env, key, default: bool) -> bool:
    raw = _get(env, key, None)
    if raw is None:
        return default
    if raw.lower() in _TRUE:
        return True
    if raw.lower() in _FALSE:
        return False
    raise ConfigError(f"{key} must be a boolean, got {raw!r}")


def closed_scenario(workers: int, loop_delay: float, duration: Optional[float]) -> ClosedScenario:
    if workers < 1:
        raise ConfigError("WORKERS must be >= 1")
    if not math.isfinite(loop_delay) or loop_delay < 0:
        raise ConfigError("LOOP_DELAY_SEC must be >= 0")
    if duration is not None and duration <= 0:
        duration = None
    return ClosedScenario(workers, loop_delay, duration)


def open_scenario(rate: float, duration: float, pre_allocated_workers: int,
                  overrun_policy: str = "drop", max_queue_wait: float = 0.1) -> OpenScenario:
    if not math.isfinite(rate) or rate <= 0:
        raise ConfigError("RATE_PER_SEC must be > 0")
    if not math.isfinite(duration) or duration <= 0:
        raise ConfigError("DURATION_SEC must be > 0 for the open model")
    if pre_allocated_workers < 1:
        raise ConfigError("PRE_ALLOCATED_WORKERS must be >= 1")
    if overrun_policy not in OVERRUN_POLICIES:
        raise ConfigError(f"OVERRUN_POLICY must be one of {OVERRUN_POLICIES}, got {overrun_policy!r}")
    if not math.isfinite(max_queue_wait) or max_queue_wait < 0:
        raise ConfigError("MAX_QUEUE_WAIT_SEC must be >= 0")
    return OpenScenario(rate, duration, pre_allocated_workers, overrun_policy, max_queue_wait)


def from_env(env: Optional[Mapping[str, str]] = None, scenario_name: Optional[str] = None) -> RunConfig:
    """Build a RunConfig from env vars. scenario_name (e.g. from argv) wins over SCENARIO."""
    env = os.environ if env is None else env
    name = (scenario_name or _get(env, "SCENARIO", "closed")).lower()
    if name not in SCENARIOS:
        raise ConfigError(f"SCENARIO must be one of {SCENARIOS}, got {name!r}")

    if name == "closed":
        scenario = closed_scenario(
            workers=_int(env, "WORKERS", 1),
            loop_delay=_float(env, "LOOP_DELAY_SEC", 1.0),
            duration=_float(env, "DURATION_SEC", 30.0),
        )
    else:
        scenario = open_scenario(
            rate=_float(env, "RATE_PER_SEC", 10.0),
            duration=_float(env, "DURATION_SEC", 30.0),
            pre_allocated_workers=_int(env, "PRE_ALLOCATED_WORKERS", 10),
            overrun_policy=_get(env, "OVERRUN_POLICY", "drop").lower(),
            max_queue_wait=_float(env, "MAX_QUEUE_WAIT_SEC", 0.1),
        )

    inter_delay = _float(env, "INTER_REQUEST_DELAY_SEC", 1.0)
    timeout = _float(env, "REQUEST_TIMEOUT_SEC", 10.0)
    grace = _float(env, "GRACE_PERIOD_SEC", 5.0)
    if inter_delay < 0 or timeout <= 0 or grace < 0:
        raise ConfigError("INTER_REQUEST_DELAY_SEC/GRACE_PERIOD_SEC must be >= 0 and REQUEST_TIMEOUT_SEC > 0")

    seed_raw = _get(env, "SEED", None)
    seed = None if seed_raw in (None, "") else _int(env, "SEED", 0)

    return RunConfig(
        scenario=scenario,
        target_base_url=_get(env, "TARGET_BASE_URL", DEFAULT_TARGET_BASE_URL).rstrip("/"),
        dataset_source=_get(env, "DATASET_SOURCE", DEFAULT_DATASET_SOURCE),
        discard_response_bodies=_bool(env, "DISCARD_RESPONSE_BODIES", False),
        reuse_connections=_bool(env, "REUSE_CONNECTIONS", True),
        include_liveness=_bool(env, "LIVENESS_CHECK", True),
        inter_request_delay=inter_delay,
        request_timeout=timeout,
        grace_period=grace,
        seed=seed,
    )

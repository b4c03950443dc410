import time, threading, random
from typing import Callable, List, NamedTuple, Optional
import requests

from common.wordlist import WordList


class RequestRecord(NamedTuple):
    name: str
    url: str
    status: Optional[int]
    ok: bool
    latency: float
    error: Optional[str] = None


class SearchWorkload:
    """
    One iteration = pick a random word, GET the liveness page (optional),
    wait (optional), GET /search?q=<word>. Every request is recorded,
    a failed liveness request does not stop the search request.
    """
    def __init__(self, target_base_url: str, metrics=None,
                 include_liveness: bool = True,
                 inter_request_delay: float = 0.0,
                 discard_response_bodies: bool = False,
                 reuse_connections: bool = True,
                 timeout: float = 10.0,
                 session_factory: Callable[[], requests.Session] = requests.Session):
        self.base_url = target_base_url.rstrip("/")
        self.metrics = metrics
        self.include_liveness = include_liveness
        self.inter_request_delay = inter_request_delay
        self.discard_response_bodies = discard_response_bodies
        self.reuse_connections = reuse_connections
        self.timeout = timeout
        self.session_factory = session_factory
        self._local = threading.local()
        self._sessions = []
        self._sessions_lock = threading.Lock()

    @classmethod
    def from_config(cls, config, metrics=None, **kwargs):
        return cls(
            config.target_base_url,
            metrics=metrics,
            include_liveness=config.include_liveness,
            inter_request_delay=config.inter_request_delay,
            discard_response_bodies=config.discard_response_bodies,
            reuse_connections=config.reuse_connections,
            timeout=config.request_timeout,
            **kwargs,
        )

    @property
    def liveness_url(self) -> str:
        return self.base_url

    def search_url(self, word: str) -> str:
        req = requests.Request("GET", f"{self.base_url}/search", params={"q": word})
        return req.prepare().url

    def _thread_session(self) -> requests.Session:
        s = getattr(self._local, "session", None)
        if s is None:
            s = self.session_factory()
            self._local.session = s
            with self._sessions_lock:
                self._sessions.append(s)
        return s

    def _get(self, session: requests.Session, name: str, url: str, params=None) -> RequestRecord:
        t0 = time.perf_counter()
        try:
            resp = session.get(url, params=params, timeout=self.timeout,
                               stream=self.discard_response_bodies)
            try:
                if self.discard_response_bodies:
                    # read to the end without buffering, otherwise urllib3 drops the pooled connection
                    for _ in resp.iter_content(65536):
                        pass
                else:
                    resp.content
                dt = time.perf_counter() - t0
                rec = RequestRecord(name, resp.url or url, resp.status_code,
                                    200 <= resp.status_code < 300, dt)
            finally:
                resp.close()
        except requests.exceptions.RequestException as e:
            rec = RequestRecord(name, url, None, False, time.perf_counter() - t0, str(e))
        if self.metrics is not None:
            self.metrics.record_request(rec)
        return rec

    def run_iteration(self, words: WordList, rng: Optional[random.Random] = None) -> List[RequestRecord]:
        _, word = words.random_word(rng)
        if self.reuse_connections:
            session, owned = self._thread_session(), False
        else:
            session, owned = self.session_factory(), True
        records = []
        try:
            if self.include_liveness:
                records.append(self._get(session, "liveness", self.liveness_url))
                if self.inter_request_delay > 0:
                    time.sleep(self.inter_request_delay)
            records.append(self._get(session, "search", f"{self.base_url}/search", params={"q": word}))
        finally:
            if owned:
                session.close()
        return records

    def close(self):
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for s in sessions:
            s.close()

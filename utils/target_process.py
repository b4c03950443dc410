# -------------------------
# Author: Jeevan Reji (modified)
# Date: 2026-10-19
# -------------------------
import subprocess, sys, time, os, signal
from typing import Optional
import psutil
import requests


class TargetProcess:
    """
    Starts the local search target (target.run_target) on a port and
    stops it again, finding the listening process by port like you
    would with lsof.
    """

    def __init__(self, port: int, host: str = "127.0.0.1"):
        self.port = port
        self.host = host
        self.proc: Optional[subprocess.Popen] = None

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def find_pid(self) -> Optional[int]:
        """Return PID of the process listening on the port, or None."""
        for proc in psutil.process_iter(["pid"]):
            try:
                for conn in proc.net_connections(kind="inet"):
                    if conn.laddr and conn.laddr.port == self.port and conn.status == psutil.CONN_LISTEN:
                        return proc.pid
            except (psutil.AccessDenied, psutil.NoSuchProcess):
                continue
        return None

    def wait_ready(self, timeout: float = 10.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            try:
                if requests.get(f"{self.base_url}/health", timeout=0.5).ok:
                    return True
            except requests.exceptions.RequestException:
                pass
            time.sleep(0.2)
        return False

    def start(self, timeout: float = 10.0):
        if self.find_pid():
            print(f"[Target] Something is already listening on {self.port}, reusing it")
            return
        print(f"[Target] Starting search target on {self.port}")
        env = os.environ.copy()
        env["TARGET_PORT"] = str(self.port)
        self.proc = subprocess.Popen(
            [sys.executable, "-m", "target.run_target", str(self.port)],
            env=env,
        )
        if not self.wait_ready(timeout):
            self.stop()
            raise RuntimeError(f"search target did not come up on port {self.port} within {timeout}s")

    def stop(self):
        if self.proc is not None:
            print(f"[Target] Stopping search target (pid={self.proc.pid})")
            self.proc.terminate()
            try:
                self.proc.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.proc.kill()
            self.proc = None
            return
        pid = self.find_pid()
        if pid:
            print(f"[Target] Stopping process {pid} on port {self.port}")
            try:
                os.kill(pid, signal.SIGTERM)
            except ProcessLookupError:
                pass

import threading
import time
from dataclasses import dataclass
from dataclasses import field


@dataclass
class ParseStats:
    total: int = 0
    parsed: int = 0
    failed: int = 0
    assertions: int = 0
    identifiers: int = 0
    start_time: float = field(default_factory=time.time)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def inc_parsed(self, assertions: int = 0, identifiers: int = 0):
        with self._lock:
            self.parsed += 1
            self.assertions += assertions
            self.identifiers += identifiers

    def inc_failed(self, count: int = 1):
        with self._lock:
            self.failed += count

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time

import hashlib
import threading
from collections import OrderedDict
from typing import Optional

from logtrack.schemas import AnalysisResult

class AnalysisCache:
    """
    Bounded LRU cache of analysis results.

    Keys combine an explicit cache version with everything the result depends
    on: the format hint, whether an external parser was available and a
    fingerprint of the input. Bumping the version makes every older entry
    unreachable. Instances are owned by their caller and are safe to share
    between request threads; there is no process-wide cache.
    """

    def __init__(self, version: str, max_entries: int = 128):
        self.version = version
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, AnalysisResult]" = OrderedDict()
        self._lock = threading.Lock()

    def make_key(self, text: str, format_hint: Optional[str] = None, external: bool = False) -> str:
        fingerprint = hashlib.sha256(text.encode('utf-8')).hexdigest()
        parser = 'external' if external else 'local'
        return f"{self.version}:{format_hint or 'auto'}:{parser}:{fingerprint}"

    def get(self, text: str, format_hint: Optional[str] = None, external: bool = False) -> Optional[AnalysisResult]:
        with self._lock:
            key = self.make_key(text, format_hint, external)
            result = self._entries.get(key)
            if result is not None:
                self._entries.move_to_end(key)
            return result

    def put(
        self,
        text: str,
        result: AnalysisResult,
        format_hint: Optional[str] = None,
        external: bool = False
    ) -> None:
        with self._lock:
            key = self.make_key(text, format_hint, external)
            self._entries[key] = result
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def bump_version(self, version: str) -> None:
        """Switch to a new schema version and drop stale results"""
        with self._lock:
            if version != self.version:
                self.version = version
                self._entries.clear()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

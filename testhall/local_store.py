"""
Offline key/value cache (test content, answers, completion flags, subjects).
One JSON file per key under TESTHALL_STORE_DIR (default: .testhall).
"""
import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from engine import LOCAL_STORE_LIMIT_MB

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_STORE_DIR = ".testhall"
_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


@dataclass
class StoreResult:
    success: bool
    size: Optional[float] = None  # MB
    error: Optional[str] = None


class LocalStore:
    def __init__(self, root: Optional[Path] = None, limit_mb: float = LOCAL_STORE_LIMIT_MB):
        self.root = Path(root or os.environ.get("TESTHALL_STORE_DIR") or DEFAULT_STORE_DIR)
        self.limit_mb = limit_mb

    def _path(self, key: str) -> Path:
        return self.root / f"{_SAFE_KEY.sub('_', key)}.json"

    def has(self, key: str) -> bool:
        return self._path(key).exists()

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading {key} from local store: {e}")
            return default

    def set(self, key: str, value: Any):
        self.root.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(json.dumps(value), encoding="utf-8")

    def remove(self, key: str):
        path = self._path(key)
        if path.exists():
            path.unlink()

    def safely_store(self, key: str, value: Any) -> StoreResult:
        """Store unless the serialized value exceeds limit_mb; report the size either way."""
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Could not serialize {key}: {e}")
            return StoreResult(False, error=str(e))

        size_mb = len(payload.encode("utf-8")) / (1024 * 1024)
        if size_mb > self.limit_mb:
            logger.warning(f"Value for {key} is {size_mb:.2f}MB, over the {self.limit_mb}MB limit")
            return StoreResult(False, size=size_mb, error="Data too large for local storage")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self._path(key).write_text(payload, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write {key} to local store: {e}")
            return StoreResult(False, size=size_mb, error=str(e))
        return StoreResult(True, size=size_mb)

    def safely_retrieve(self, key: str, default: Any) -> Any:
        value = self.get(key, default)
        return default if value is None else value

# ABOUTME: On-disk persistence for route specs, one JSON document per route
# ABOUTME: Writes go through a temp file and os.replace so readers never see partial records

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from threading import Lock
from typing import Union

from .models import RouteSpec

log = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[^a-zA-Z0-9]')


def spec_filename(route_key: str) -> str:
    """File name for a route key such as 'get:/users/{id}'."""
    return _UNSAFE_CHARS.sub('_', route_key) + '.json'


class SpecStore:
    """Directory of persisted RouteSpec documents."""

    def __init__(self, docs_dir: Union[str, Path] = "./docs"):
        self.docs_dir = Path(docs_dir)
        self._lock = Lock()

    def __len__(self) -> int:
        if not self.docs_dir.is_dir():
            return 0
        return sum(1 for _ in self.docs_dir.glob('*.json'))

    def ensure_dir(self) -> None:
        self.docs_dir.mkdir(parents=True, exist_ok=True)

    def save(self, route_key: str, spec: RouteSpec) -> bool:
        """
        Persist one spec, replacing any previous document for the same key.

        Returns:
            True on success, False if the write failed (the failure is logged)
        """
        target = self.docs_dir / spec_filename(route_key)
        try:
            content = json.dumps(spec.to_dict(), indent=2, default=str)
            with self._lock:
                self.ensure_dir()
                fd, tmp_name = tempfile.mkstemp(dir=self.docs_dir, prefix='.', suffix='.tmp')
                try:
                    with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                        fh.write(content)
                    os.replace(tmp_name, target)
                except BaseException:
                    os.unlink(tmp_name)
                    raise
        except (OSError, TypeError, ValueError) as e:
            log.error(f"Failed to save spec for {route_key} to {target}: {e}")
            return False
        return True

    def load(self) -> list[RouteSpec]:
        """Load every persisted spec, skipping files that cannot be parsed."""
        if not self.docs_dir.is_dir():
            return []

        specs = []
        for path in sorted(self.docs_dir.glob('*.json')):
            try:
                data = json.loads(path.read_text(encoding='utf-8'))
                specs.append(RouteSpec.from_dict(data))
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                log.warning(f"Skipping malformed spec file {path.name}: {e}")
        return specs

    def clear(self) -> int:
        """Delete every persisted spec and return how many were removed."""
        if not self.docs_dir.is_dir():
            return 0
        count = 0
        with self._lock:
            for path in self.docs_dir.glob('*.json'):
                path.unlink(missing_ok=True)
                count += 1
        return count

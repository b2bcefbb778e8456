# ABOUTME: AutoDoc engine wiring the spec store, registry, recorder and assembler
# ABOUTME: The single object traffic sources and document consumers talk to

import logging
from concurrent.futures import Future
from threading import Lock
from typing import Optional

from .config import ApiMeta, Settings, get_settings
from .models import DocRequest, DocResponse
from .openapi import generate_openapi_spec, validate_document
from .recorder import ExchangeBuilder, Recorder
from .registry import RouteSpecRegistry
from .storage import SpecStore
from .viewer import render_viewer

log = logging.getLogger(__name__)


class AutoDoc:
    """Owns one registry and everything around it."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[SpecStore] = None,
        meta: Optional[ApiMeta] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or SpecStore(self.settings.docs_dir)
        self.meta = meta or self.settings.api_meta()
        self.registry = RouteSpecRegistry(store=self.store)
        self.recorder = Recorder(self.registry, max_workers=self.settings.max_workers)
        self._loaded = False
        self._load_lock = Lock()

    @property
    def spec_url(self) -> str:
        return f"{self.settings.docs_path.rstrip('/')}/openapi.json"

    def ensure_loaded(self) -> None:
        """Seed the registry from the store once per engine lifetime."""
        with self._load_lock:
            if self._loaded:
                return
            self.registry.load_from(self.store)
            self._loaded = True

    def record(self, request: DocRequest, response: DocResponse) -> bool:
        """Record an exchange synchronously. Returns True if the stored shape changed."""
        self.ensure_loaded()
        return self.registry.record(request, response)

    def _load_quietly(self) -> None:
        if not self._loaded:
            try:
                self.ensure_loaded()
            except OSError as e:
                log.error(f"Failed to load persisted specs: {e}")

    def submit(self, request: DocRequest, response: DocResponse) -> Optional[Future]:
        """Record an exchange in the background without blocking the caller."""
        self._load_quietly()
        return self.recorder.submit(request, response)

    def submit_deferred(self, build: ExchangeBuilder, label: str = "exchange") -> Optional[Future]:
        """Like submit, but the exchange itself is built on the recorder's worker."""
        self._load_quietly()
        return self.recorder.submit_deferred(build, label)

    def get_document(self) -> dict:
        """
        Assemble the OpenAPI document from a snapshot of the registry.

        Raises:
            InvalidDocumentError: if the assembled document is malformed
        """
        self.ensure_loaded()
        return validate_document(generate_openapi_spec(self.registry.all(), self.meta))

    def get_viewer_markup(self, spec_url: Optional[str] = None) -> str:
        self.ensure_loaded()
        return render_viewer(spec_url or self.spec_url, title=self.meta.title)

    def reset(self, clear_store: bool = False) -> int:
        """Forget every in-memory route, and the persisted ones too if asked. Returns the in-memory count."""
        count = len(self.registry)
        self.registry.reset()
        if clear_store:
            self.store.clear()
        return count

    def close(self) -> None:
        self.recorder.shutdown(wait=True)

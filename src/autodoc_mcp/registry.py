# ABOUTME: Process-wide registry of the latest RouteSpec per (method, templated path)
# ABOUTME: Decides between storing a new shape and touching the access timestamp

import dataclasses
import logging
from threading import Lock
from typing import Optional

from .auth import classify_auth, extract_custom_headers
from .bodies import analyze_request_body, analyze_response
from .models import DocRequest, DocResponse, RouteSpec, route_key, utc_now
from .paths import extract_params, normalize_path, split_query, template_names
from .schema import to_json_value
from .storage import SpecStore

log = logging.getLogger(__name__)


def build_route_spec(request: DocRequest, response: DocResponse) -> RouteSpec:
    """Build a candidate RouteSpec from one exchange."""
    raw_path, raw_query = split_query(request.path)
    templated = normalize_path(raw_path)

    params = extract_params(raw_path, templated)
    # Router-supplied names only count where the template has the same variable
    names = template_names(templated)
    params.update({str(k): v for k, v in request.params.items() if str(k) in names})
    query = dict(raw_query)
    query.update(request.query)

    now = utc_now()
    return RouteSpec(
        method=request.method.upper(),
        path=templated,
        original_path=raw_path,
        path_params=to_json_value(params),
        query_params=to_json_value(query),
        request_body=analyze_request_body(request),
        auth=classify_auth(request.headers),
        custom_headers=to_json_value(extract_custom_headers(request.headers)),
        response=analyze_response(response),
        first_seen=now,
        last_updated=now,
        last_accessed=now,
    )


def _body_signature(spec: RouteSpec) -> Optional[str]:
    return spec.request_body.signature if spec.request_body else None


def _response_signature(spec: RouteSpec) -> Optional[str]:
    body = spec.response.body if spec.response else None
    return body.signature if body else None


def _auth_kind(spec: RouteSpec) -> Optional[str]:
    return spec.auth.kind if spec.auth else None


def should_update(existing: Optional[RouteSpec], candidate: RouteSpec) -> bool:
    """
    Decide whether a candidate replaces the stored spec.

    The stored spec is replaced when there is none yet, or when the request
    or response body signature, the query key set, the custom header name
    set or the auth kind changed.
    """
    if existing is None:
        return True
    if _body_signature(existing) != _body_signature(candidate):
        return True
    if _response_signature(existing) != _response_signature(candidate):
        return True
    if set(existing.query_params) != set(candidate.query_params):
        return True
    if set(existing.custom_headers) != set(candidate.custom_headers):
        return True
    if _auth_kind(existing) != _auth_kind(candidate):
        return True
    return False


class RouteSpecRegistry:
    """Thread-safe map of RouteKey to RouteSpec with per-key critical sections."""

    def __init__(self, store: Optional[SpecStore] = None):
        self.store = store
        self._specs: dict[tuple[str, str], RouteSpec] = {}
        self._key_locks: dict[tuple[str, str], Lock] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._specs)

    def _key_lock(self, key: tuple[str, str]) -> Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = Lock()
            return lock

    def record(self, request: DocRequest, response: DocResponse) -> bool:
        """
        Fold one exchange into the registry.

        Only 2xx responses are documented; anything else is ignored.

        Returns:
            True if the stored shape changed (and a write was attempted)
        """
        if not response.is_success:
            return False

        candidate = build_route_spec(request, response)
        key = candidate.key

        with self._key_lock(key):
            with self._lock:
                existing = self._specs.get(key)

            if should_update(existing, candidate):
                if existing is not None:
                    candidate.first_seen = existing.first_seen
                with self._lock:
                    self._specs[key] = candidate
                log.info(f"Updating spec for {candidate.key_string} - schema change detected")
                if self.store is not None:
                    self.store.save(candidate.key_string, candidate)
                return True

            touched = dataclasses.replace(existing, last_accessed=utc_now())
            with self._lock:
                self._specs[key] = touched
            log.debug(f"Skipping update for {candidate.key_string} - same schema structure")
            return False

    def get(self, method: str, path: str) -> Optional[RouteSpec]:
        """Look up a spec by method and templated path."""
        with self._lock:
            return self._specs.get(route_key(method, path))

    def all(self) -> list[RouteSpec]:
        """Snapshot of every stored spec, ordered by path then method."""
        with self._lock:
            specs = list(self._specs.values())
        return sorted(specs, key=lambda s: (s.path, s.method))

    def load_from(self, store: SpecStore) -> int:
        """Seed the registry from persisted specs and return how many were loaded."""
        specs = store.load()
        with self._lock:
            for spec in specs:
                self._specs[spec.key] = spec
        log.info(f"Loaded {len(specs)} route specs from {store.docs_dir}")
        return len(specs)

    def reset(self) -> None:
        """Forget every in-memory spec. Persisted documents are left alone."""
        with self._lock:
            self._specs.clear()

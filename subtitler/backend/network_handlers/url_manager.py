from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple
from urllib.parse import urlencode, urljoin

from subtitler.backend.common.errors import ConfigError
from subtitler.config.settings import (
    get_api_key,
    get_default_headers,
    list_service_configs,
)


@dataclass(frozen=True)
class ServiceView:
    name: str
    base_url: str
    default_headers: Dict[str, str]
    rate_limits: Dict[str, Any]
    endpoints: Dict[str, str]
    api_key: Optional[str]


class URLManager:
    """
    Builds metadata service URLs and injects per-service defaults, without
    doing any network I/O. Pure config-driven.

    - YouTube Data API: appends ``key`` from settings into the query
    - Vimeo simple API / YouTube oEmbed: no credentials
    """

    def __init__(self, service_overrides: Optional[Dict[str, Dict[str, Any]]] = None):
        services = list_service_configs()
        for svc, override in (service_overrides or {}).items():
            merged = dict(services.get(svc) or {})
            merged.update(override or {})
            services[svc] = merged

        self._views: Dict[str, ServiceView] = {
            name: self._build_view(name, cfg) for name, cfg in services.items()
        }

    # -------- Public API --------

    def build(self, service: str, path: str, params: Optional[Dict[str, Any]] = None
              ) -> Tuple[str, Dict[str, str]]:
        """Build a full URL for a path of ``service``. Returns (url, headers)."""
        view = self._require_view(service)
        params = dict(params or {})
        headers = dict(view.default_headers)

        if view.api_key and "key" not in params:
            params["key"] = view.api_key

        url = urljoin(_ensure_trailing_slash(view.base_url), path.lstrip("/"))
        if params:
            url = f"{url}?{urlencode(params, doseq=True)}"

        return url, headers

    def build_from_endpoint(self, service: str, endpoint_key: str,
                            fmt_args: Optional[Iterable[Any]] = None,
                            params: Optional[Dict[str, Any]] = None
                            ) -> Tuple[str, Dict[str, str]]:
        """
        Resolve an endpoint by key, format placeholders, and build.
        Example:
            build_from_endpoint("vimeo", "video", fmt_args=(76979871,))
        """
        path_tmpl = self._require_view(service).endpoints.get(endpoint_key)
        if path_tmpl is None:
            raise ConfigError(f"Unknown endpoint '{endpoint_key}' for service '{service}'")

        return self.build(service, path_tmpl.format(*(fmt_args or ())), params=params)

    def has_credentials(self, service: str) -> bool:
        return bool(self._require_view(service).api_key)

    def should_respect_retry_after(self, service: str) -> bool:
        val = self._require_view(service).rate_limits.get("respect_retry_after")

        return True if val is None else bool(val)

    # -------- Internals --------

    def _require_view(self, service: str) -> ServiceView:
        if service not in self._views:
            raise ConfigError(f"Unknown service '{service}'. Known: {list(self._views.keys())}")

        return self._views[service]

    def _build_view(self, service: str, raw: Dict[str, Any]) -> ServiceView:
        return ServiceView(
            name=service,
            base_url=raw.get("base_url") or "",
            default_headers=get_default_headers(service) or dict(raw.get("default_headers") or {}),
            rate_limits=dict(raw.get("rate_limits") or {}),
            endpoints=dict(raw.get("endpoints") or {}),
            api_key=raw.get("api_key") or get_api_key(service),
        )


def _ensure_trailing_slash(u: str) -> str:
    return u if u.endswith("/") else (u + "/")

"""Configuration helpers for the bulk editor.

Values come from environment variables, optionally primed from a ``.env``
file next to the application, so installers and tests can set them without
touching application internals.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping
import os

from dotenv import load_dotenv

CATALOG_BACKENDS = ("shopify", "local")


@dataclass(frozen=True)
class BulkEditConfig:
    """Strongly typed configuration for the bulk edit service."""

    base_dir: Path
    secret_key: str
    catalog_backend: str
    shop_domain: str
    access_token: str
    api_version: str
    product_file: Path
    taxonomy_file: Path
    product_backups: int
    search_limit: int
    max_workers: int
    skip_unchanged: bool
    request_timeout: float
    taxonomy_cache_ttl: float
    allowed_origins: tuple[str, ...]
    log_level: str
    force_tls: bool = False
    api_host: str = "0.0.0.0"
    api_port: int = 7890
    trust_proxy_headers: bool = True

    @property
    def uses_shopify(self) -> bool:
        return self.catalog_backend == "shopify"


def env_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _coerce_origins(raw: str | Iterable[str]) -> tuple[str, ...]:
    if isinstance(raw, str):
        items = [piece.strip() for piece in raw.split(",")]
    else:
        items = [piece.strip() for piece in raw]
    return tuple(filter(None, items)) or ("http://localhost", "http://127.0.0.1")


def _resolve_path(base_dir: Path, raw: str) -> Path:
    path = Path(raw)
    return path if path.is_absolute() else base_dir / path


def load_bulk_edit_config(base_dir: Path, env: Mapping[str, str] | None = None) -> BulkEditConfig:
    """Load configuration from ``base_dir/.env`` and the given env mapping."""

    base_dir = Path(base_dir)
    if env is None:
        load_dotenv(base_dir / ".env")
    env_map = dict(os.environ if env is None else env)

    shop_domain = env_map.get("SHOPIFY_SHOP", "").strip()
    backend = env_map.get("CATALOG_BACKEND", "shopify" if shop_domain else "local").strip().lower()
    if backend not in CATALOG_BACKENDS:
        raise ValueError(f"CATALOG_BACKEND must be one of {', '.join(CATALOG_BACKENDS)}")

    return BulkEditConfig(
        base_dir=base_dir,
        secret_key=env_map.get("SECRET_KEY", "dev-change-me"),
        catalog_backend=backend,
        shop_domain=shop_domain,
        access_token=env_map.get("SHOPIFY_ACCESS_TOKEN", "").strip(),
        api_version=env_map.get("SHOPIFY_API_VERSION", "2024-10").strip(),
        product_file=_resolve_path(base_dir, env_map.get("PRODUCT_FILE", "products.json")),
        taxonomy_file=_resolve_path(base_dir, env_map.get("TAXONOMY_FILE", "taxonomy.json")),
        product_backups=int(env_map.get("PRODUCT_BACKUPS", "2")),
        search_limit=int(env_map.get("SEARCH_LIMIT", "50")),
        max_workers=max(1, int(env_map.get("BULK_EDIT_MAX_WORKERS", "1"))),
        skip_unchanged=env_bool(env_map.get("BULK_EDIT_SKIP_UNCHANGED"), False),
        request_timeout=float(env_map.get("REQUEST_TIMEOUT_SECONDS", "20")),
        taxonomy_cache_ttl=float(env_map.get("TAXONOMY_CACHE_TTL_SECONDS", "3600")),
        allowed_origins=_coerce_origins(
            env_map.get("ALLOWED_ORIGINS", "http://localhost,http://127.0.0.1")
        ),
        log_level=env_map.get("LOG_LEVEL", "INFO").strip().upper(),
        force_tls=env_bool(env_map.get("FORCE_TLS"), False),
        api_host=env_map.get("API_HOST", "0.0.0.0").strip(),
        api_port=int(env_map.get("API_PORT", "7890")),
        trust_proxy_headers=env_bool(env_map.get("TRUST_PROXY_HEADERS"), True),
    )

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..utils import load_credentials
from .artifacts import ProviderCacheStore
from .provider_clients import build_provider_adapters


@dataclass(frozen=True)
class PipelineContext:
    cache_dir: Path
    credentials_path: Path
    sources: list[str]

    def credentials(self) -> dict[str, Any]:
        return load_credentials(self.credentials_path)

    def build_adapters(self) -> dict[str, object]:
        return build_provider_adapters(sources=list(self.sources), credentials=self.credentials())

    def cache_store(self) -> ProviderCacheStore:
        return ProviderCacheStore(self.cache_dir)

"""Data seeding utilities for the static care-provider directory.

Loads provider definitions from the bundled ``pune_providers.json`` file.
The resulting list is the canonical baseline of the
:class:`~src.services.directory.ProviderDirectory`; its order is the
directory's canonical order.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from src.models.provider import Provider

if TYPE_CHECKING:
    from src.services.directory import NearbyProviderLookup, ProviderDirectory

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

_DATA_DIR: Path = Path(__file__).resolve().parent / "providers"
_SEED_PROVIDERS_PATH: Path = _DATA_DIR / "pune_providers.json"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_providers(path: Path | None = None) -> list[Provider]:
    """Load the static provider seed set from a JSON file.

    Entries that fail validation are logged and skipped; the order of the
    remaining entries is preserved.

    Raises
    ------
    FileNotFoundError
        If the JSON file does not exist.
    json.JSONDecodeError
        If the JSON is malformed.
    """
    file_path = path or _SEED_PROVIDERS_PATH

    if not file_path.exists():
        raise FileNotFoundError(f"Provider data file not found: {file_path}")

    with file_path.open("r", encoding="utf-8") as f:
        raw_providers: list[dict] = json.load(f)

    providers: list[Provider] = []
    seen: set[str] = set()
    for raw in raw_providers:
        try:
            provider = Provider.model_validate(raw)
        except ValueError:
            logger.warning(
                "seed.parse_error",
                provider_id=raw.get("id", "unknown"),
                exc_info=True,
            )
            continue
        if provider.id in seen:
            logger.warning("seed.duplicate_id", provider_id=provider.id)
            continue
        seen.add(provider.id)
        providers.append(provider)

    logger.info("seed.loaded_providers", count=len(providers), source=str(file_path))
    return providers


def build_directory(
    *,
    path: Path | None = None,
    lookup: NearbyProviderLookup | None = None,
) -> ProviderDirectory:
    """Create a :class:`ProviderDirectory` seeded from the bundled data."""
    from src.services.directory import ProviderDirectory

    return ProviderDirectory(load_providers(path), lookup=lookup)

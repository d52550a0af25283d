"""Bootstrap helpers wiring settings, sources and stores into an orchestrator."""

from __future__ import annotations

import logging
from pathlib import Path

from .config import Settings
from .health import SourceHealthMonitor
from .orchestrator import SearchOrchestrator
from .recent import JsonFileKeyValueStore, KeyValueStore
from .sources import CatalogSource, HttpCatalogSource, InMemoryCatalogSource

logger = logging.getLogger(__name__)


def build_source(settings: Settings, *, catalog_path: Path | None = None) -> CatalogSource:
    """Return the snapshot-backed source when a path is given, else the HTTP API."""

    if catalog_path is not None:
        logger.info("catalog_snapshot_loaded path=%s", catalog_path)
        return InMemoryCatalogSource.from_json(catalog_path)
    return HttpCatalogSource(settings)


async def build_orchestrator(
    settings: Settings,
    *,
    source: CatalogSource | None = None,
    store: KeyValueStore | None = None,
    catalog_path: Path | None = None,
) -> SearchOrchestrator:
    """Create and initialise a search orchestrator for one session."""

    orchestrator = SearchOrchestrator(
        source or build_source(settings, catalog_path=catalog_path),
        settings,
        store=store if store is not None else JsonFileKeyValueStore(settings.recent_store_path),
        monitor=SourceHealthMonitor(),
    )
    await orchestrator.initialise()
    return orchestrator


async def shutdown_orchestrator(orchestrator: SearchOrchestrator) -> None:
    try:
        await orchestrator.shutdown()
    except Exception as exc:
        logger.warning("Orchestrator shutdown raised an exception: %s", exc, exc_info=exc)

import asyncio
import io
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Union

import pydantic
import yaml

from jobtrigger.errors import InvalidCatalog
from jobtrigger.model import CatalogConfig, Periodic, Postsubmit, Presubmit

logger = logging.getLogger("jobtrigger")

ShaGetter = Callable[[], str]


class Catalog:
    """Read-only snapshot of the static job definitions."""

    def __init__(self, config: Optional[CatalogConfig] = None):
        self._config = config if config is not None else CatalogConfig()

    @classmethod
    def from_yaml(cls, raw: str, source: str = "<string>") -> "Catalog":
        try:
            data = yaml.safe_load(io.StringIO(raw))
        except yaml.YAMLError as e:
            raise InvalidCatalog(str(e), source=source) from e
        try:
            config = CatalogConfig() if data is None else CatalogConfig.model_validate(data)
        except pydantic.ValidationError as e:
            raise InvalidCatalog(str(e), source=source) from e
        return cls(config)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "Catalog":
        with open(path) as fh:
            raw = fh.read()
        return cls.from_yaml(raw, source=str(path))

    def summary(self) -> Dict[str, int]:
        return {
            "periodics": len(self._config.periodics),
            "presubmits": sum(len(v) for v in self._config.presubmits.values()),
            "postsubmits": sum(len(v) for v in self._config.postsubmits.values()),
        }

    def all_periodics(self) -> List[Periodic]:
        return list(self._config.periodics)

    def get_presubmits_static(self, org_repo: str) -> List[Presubmit]:
        return list(self._config.presubmits.get(org_repo, []))

    def get_postsubmits_static(self, org_repo: str) -> List[Postsubmit]:
        return list(self._config.postsubmits.get(org_repo, []))

    def allowed_clusters(self, subscription: str) -> List[str]:
        # subscriptions arrive as projects/<project>/subscriptions/<name>
        parts = subscription.split("/")
        if len(parts) == 4 and parts[0] == "projects" and parts[2] == "subscriptions":
            project, name = parts[1], parts[3]
        else:
            project, name = None, subscription

        clusters: List[str] = []
        for trigger in self._config.pubsub_triggers:
            if project is not None and trigger.project != project:
                continue
            if name not in trigger.topics:
                continue
            for cluster in trigger.allowed_clusters:
                if cluster not in clusters:
                    clusters.append(cluster)
        return clusters


class DynamicCatalog(Protocol):
    """Per-repository job definitions found at a given commit.

    Results include the static definitions for the same repository.
    """

    async def get_presubmits(
        self, org_repo: str, base_sha_getter: ShaGetter, *head_sha_getters: ShaGetter
    ) -> List[Presubmit]:
        ...

    async def get_postsubmits(
        self, org_repo: str, base_sha_getter: ShaGetter
    ) -> List[Postsubmit]:
        ...


class CatalogAgent:
    """Holds the current catalog snapshot and swaps it on reload.

    Published snapshots are never modified, so handlers can keep using the one
    they got from :meth:`config` while a reload happens.
    """

    path: Optional[Path]

    def __init__(self, catalog: Optional[Catalog] = None, path: Optional[Path] = None):
        self._catalog = catalog if catalog is not None else Catalog()
        self.path = path

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "CatalogAgent":
        path = Path(path)
        logger.info("Loading catalog from %s", path)
        return cls(Catalog.from_path(path), path=path)

    def config(self) -> Catalog:
        return self._catalog

    def set(self, catalog: Catalog) -> None:
        self._catalog = catalog

    def reload(self) -> bool:
        if self.path is None:
            return False
        try:
            catalog = Catalog.from_path(self.path)
        except (OSError, InvalidCatalog):
            logger.error(
                "Failed to reload catalog from %s, keeping previous", self.path,
                exc_info=True,
            )
            return False
        self._catalog = catalog
        logger.debug("Reloaded catalog from %s", self.path)
        return True

    async def watch(self, interval: float) -> None:
        logger.info("Reloading catalog every %.0f seconds", interval)
        while True:
            await asyncio.sleep(interval)
            # file read and parse stay off the event loop
            await asyncio.to_thread(self.reload)

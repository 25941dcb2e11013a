"""
Published service registry.

Maps (name, version) to the adapter and model handle bound to it.

Guarantees:
  - publish never overwrites an existing name+version
  - update swaps the bound model in place and bumps the revision; an
    expected_revision turns it into a compare-and-swap
  - delete is a hard delete; later lookups raise ServiceNotFoundError
"""

from __future__ import annotations

import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import pandas as pd

from src.exceptions import RevisionConflictError, ServiceAlreadyExistsError, ServiceNotFoundError

logger = logging.getLogger(__name__)

Adapter = Callable[[Any, Any], pd.DataFrame]

_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_VERSION_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ServiceEntry:
    name: str
    version: str
    adapter: Adapter
    model: Any
    inputs: Dict[str, str]
    outputs: Dict[str, str]
    description: str = ""
    model_uri: Optional[str] = None
    revision: int = 1
    created_at_utc: datetime = field(default_factory=_utcnow)
    updated_at_utc: datetime = field(default_factory=_utcnow)

    @property
    def key(self) -> Tuple[str, str]:
        return self.name, self.version

    def consume(self, record) -> pd.DataFrame:
        return self.adapter(self.model, record)


class ServiceRegistry(ABC):
    """Storage interface the publishing layer depends on."""

    @abstractmethod
    def publish(
        self,
        name: str,
        version: str,
        adapter: Adapter,
        model: Any,
        inputs: Dict[str, str],
        outputs: Dict[str, str],
        description: str = "",
        model_uri: Optional[str] = None,
    ) -> ServiceEntry:
        ...

    @abstractmethod
    def get(self, name: str, version: str) -> ServiceEntry:
        ...

    @abstractmethod
    def update(
        self,
        name: str,
        version: str,
        model: Any,
        expected_revision: Optional[int] = None,
        model_uri: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ServiceEntry:
        ...

    @abstractmethod
    def delete(self, name: str, version: str) -> None:
        ...

    @abstractmethod
    def list_services(self, name: Optional[str] = None) -> List[ServiceEntry]:
        ...


class InMemoryServiceRegistry(ServiceRegistry):
    def __init__(self) -> None:
        self._entries: Dict[Tuple[str, str], ServiceEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def publish(
        self,
        name: str,
        version: str,
        adapter: Adapter,
        model: Any,
        inputs: Dict[str, str],
        outputs: Dict[str, str],
        description: str = "",
        model_uri: Optional[str] = None,
    ) -> ServiceEntry:
        if not _NAME_RE.match(name or ""):
            raise ValueError(f"Invalid service name: {name!r}")
        if not _VERSION_RE.match(version or ""):
            raise ValueError(f"Invalid service version: {version!r}")

        entry = ServiceEntry(
            name=name,
            version=version,
            adapter=adapter,
            model=model,
            inputs=dict(inputs),
            outputs=dict(outputs),
            description=description,
            model_uri=model_uri,
        )
        with self._lock:
            if entry.key in self._entries:
                raise ServiceAlreadyExistsError(name, version)
            self._entries[entry.key] = entry

        logger.info("[REGISTRY] Published %s/%s", name, version)
        return entry

    def get(self, name: str, version: str) -> ServiceEntry:
        with self._lock:
            entry = self._entries.get((name, version))
        if entry is None:
            raise ServiceNotFoundError(name, version)
        return entry

    def update(
        self,
        name: str,
        version: str,
        model: Any,
        expected_revision: Optional[int] = None,
        model_uri: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ServiceEntry:
        with self._lock:
            current = self._entries.get((name, version))
            if current is None:
                raise ServiceNotFoundError(name, version)
            if expected_revision is not None and expected_revision != current.revision:
                raise RevisionConflictError(name, version, expected_revision, current.revision)

            updated = replace(
                current,
                model=model,
                model_uri=model_uri,
                description=current.description if description is None else description,
                revision=current.revision + 1,
                updated_at_utc=_utcnow(),
            )
            self._entries[updated.key] = updated

        logger.info("[REGISTRY] Updated %s/%s | revision=%d", name, version, updated.revision)
        return updated

    def delete(self, name: str, version: str) -> None:
        with self._lock:
            if self._entries.pop((name, version), None) is None:
                raise ServiceNotFoundError(name, version)
        logger.info("[REGISTRY] Deleted %s/%s", name, version)

    def list_services(self, name: Optional[str] = None) -> List[ServiceEntry]:
        with self._lock:
            entries = list(self._entries.values())
        if name is not None:
            entries = [e for e in entries if e.name == name]
        return sorted(entries, key=lambda e: e.key)

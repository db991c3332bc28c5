"""
LawPilot Artifact Store

Key-value store the pipeline stages communicate through. One slot per
StageKey; each stage is the sole writer of its own slot and the last write
wins. Values are held as canonical JSON so a rerun with unchanged inputs
writes byte-identical values.

Two implementations share the contract:
- ArtifactStore: in memory
- JsonFileStore: persisted to a single JSON file after every write
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Protocol, TypeVar, Union

from .canon import canonical_json, canonical_json_bytes
from .exceptions import LawPilotError, MissingPrerequisiteError, StoreError
from .models import StageKey


logger = logging.getLogger(__name__)


class Artifact(Protocol):
    def to_dict(self) -> dict[str, Any]: ...


T = TypeVar("T")

KeyRef = Union[StageKey, str]


def _key(key: KeyRef) -> str:
    return key.value if isinstance(key, StageKey) else str(key)


class ArtifactStore:
    """
    In-memory artifact store.

    Usage:
        store = ArtifactStore()
        store.write(StageKey.CLASSIFICATION, classification)
        result = store.read(StageKey.CLASSIFICATION, ClassificationResult)
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get_raw(self, key: KeyRef) -> Optional[str]:
        """The stored canonical JSON text, or None."""
        return self._data.get(_key(key))

    def put_raw(self, key: KeyRef, text: str) -> None:
        self._data[_key(key)] = text

    def write(self, key: KeyRef, artifact: Artifact) -> str:
        """Serialize an artifact canonically and store it; returns the stored text."""
        text = canonical_json(artifact.to_dict())
        self.put_raw(key, text)
        return text

    def read(self, key: KeyRef, cls: type[T]) -> Optional[T]:
        """
        Read and rebuild an artifact.

        Returns None when the key is missing or the stored value is malformed;
        malformed values are logged.
        """
        raw = self.get_raw(key)
        if raw is None:
            return None
        try:
            return cls.from_dict(json.loads(raw))  # type: ignore[attr-defined]
        except (ValueError, KeyError, TypeError, AttributeError, LawPilotError) as e:
            logger.warning(
                "Discarding malformed %s artifact: %s", _key(key), e, extra={"stage": _key(key)}
            )
            return None

    def require(self, key: KeyRef, cls: type[T], stage: KeyRef) -> T:
        """
        Read a prerequisite artifact.

        Raises:
            MissingPrerequisiteError: If it is missing or malformed
        """
        artifact = self.read(key, cls)
        if artifact is None:
            raise MissingPrerequisiteError(
                message=f"Missing prerequisite artifact '{_key(key)}'",
                details={"missing": _key(key)},
                stage=_key(stage),
            )
        return artifact

    def has(self, key: KeyRef) -> bool:
        return _key(key) in self._data

    def delete(self, key: KeyRef) -> None:
        self._data.pop(_key(key), None)

    def keys(self) -> list[str]:
        return sorted(self._data)

    def clear(self) -> None:
        self._data.clear()

    def snapshot(self) -> dict[str, Any]:
        """Every stored artifact in dict form, keyed by slot (unparseable values kept as text)."""
        result: dict[str, Any] = {}
        for key, text in sorted(self._data.items()):
            try:
                result[key] = json.loads(text)
            except ValueError:
                result[key] = text
        return result


class JsonFileStore(ArtifactStore):
    """
    Artifact store persisted to one JSON file.

    The file holds an object of slot -> artifact. It is rewritten after every
    write or delete (temp file + rename), and read once on construction.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            self._load()

    def _load(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(
                message=f"Cannot read artifact store: {e}",
                details={"path": str(self.path)},
            ) from e
        if not isinstance(data, dict):
            raise StoreError(
                message="Artifact store file must contain a JSON object",
                details={"path": str(self.path)},
            )
        for key, value in data.items():
            self._data[key] = canonical_json(value)

    def _flush(self) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as f:
                f.write(canonical_json_bytes(self.snapshot()))
            os.replace(tmp, self.path)
        except OSError as e:
            raise StoreError(
                message=f"Cannot write artifact store: {e}",
                details={"path": str(self.path)},
            ) from e

    def put_raw(self, key: KeyRef, text: str) -> None:
        super().put_raw(key, text)
        self._flush()

    def delete(self, key: KeyRef) -> None:
        super().delete(key)
        self._flush()

    def clear(self) -> None:
        super().clear()
        self._flush()

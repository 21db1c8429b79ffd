"""
Result cache for read-side transformations of analysis results.

Uses diskcache for SQLite-based persistent caching. Entries never expire:
a ``set`` on an existing key overwrites it, and callers that know the
underlying data changed pass a ``data_version`` (or call ``invalidate``).
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from diskcache import Cache

from .exceptions import InvalidCacheTargetError
from .logging_config import get_logger

logger = get_logger(__name__)


class TargetKind(Enum):
    USER = "user"
    PROJECT = "project"
    ANALYSIS = "analysis"


@dataclass(frozen=True)
class CacheTarget:
    """The entity whose derived data is cached, with its identity chain.

    Build one with ``for_user``, ``for_project`` or ``for_analysis``.
    """

    kind: TargetKind
    user_id: str
    project_id: str = ""
    analysis_id: str = ""

    @classmethod
    def for_user(cls, user_id: Any) -> CacheTarget:
        return cls(TargetKind.USER, str(user_id))

    @classmethod
    def for_project(cls, user_id: Any, project_id: Any) -> CacheTarget:
        return cls(TargetKind.PROJECT, str(user_id), str(project_id))

    @classmethod
    def for_analysis(cls, user_id: Any, project_id: Any, analysis_id: Any) -> CacheTarget:
        return cls(TargetKind.ANALYSIS, str(user_id), str(project_id), str(analysis_id))

    def identity_chain(self) -> str:
        """``user:project:analysis`` with the ids below this kind left blank."""
        if self.kind is TargetKind.ANALYSIS:
            return f"{self.user_id}:{self.project_id}:{self.analysis_id}"
        if self.kind is TargetKind.PROJECT:
            return f"{self.user_id}:{self.project_id}:"
        if self.kind is TargetKind.USER:
            return f"{self.user_id}::"
        raise InvalidCacheTargetError(self)


def build_cache_key(
    operation: str,
    parser_name: str,
    target: CacheTarget,
    data_version: Optional[str] = None,
) -> str:
    """Fixed-length (32 hex chars) key for an operation on a target."""
    if not isinstance(target, CacheTarget):
        raise InvalidCacheTargetError(target)

    # identity_chain() rejects unknown kinds; the parts themselves are
    # JSON-encoded since ids may contain ":" or "@"
    target.identity_chain()
    material = json.dumps(
        [
            operation,
            parser_name,
            target.kind.value,
            target.user_id,
            target.project_id,
            target.analysis_id,
            data_version or None,
        ]
    )
    return hashlib.md5(material.encode("utf-8")).hexdigest()


class ResultCache:
    """
    diskcache-backed store of derived results.

    Features:
    - Keys from operation, parser and target identity chain
    - Overwrite on set, no TTL
    - Thread-safe and process-safe (diskcache)
    """

    def __init__(self, cache_dir: str | Path = ".php-sanitizer/cache", enabled: bool = True):
        self.enabled = enabled

        if self.enabled:
            self.cache: Optional[Cache] = Cache(str(cache_dir))
            logger.debug(f"Result cache initialized at {cache_dir}")
        else:
            self.cache = None
            logger.debug("Result cache disabled")

    def get(
        self,
        operation: str,
        parser_name: str,
        target: CacheTarget,
        data_version: Optional[str] = None,
    ) -> Optional[Any]:
        """
        Get a cached payload.

        Returns:
            The payload, or None on a miss
        """
        key = build_cache_key(operation, parser_name, target, data_version)
        if not self.enabled or self.cache is None:
            return None

        value = self.cache.get(key)
        if value is not None:
            logger.debug(f"Cache hit: {key[:16]}...")
        return value

    def set(
        self,
        payload: Any,
        operation: str,
        parser_name: str,
        target: CacheTarget,
        data_version: Optional[str] = None,
    ) -> None:
        """Store ``payload``, replacing any previous payload for the same key."""
        key = build_cache_key(operation, parser_name, target, data_version)
        if not self.enabled or self.cache is None:
            return

        self.cache.set(key, payload)
        logger.debug(f"Cache set: {key[:16]}...")

    def invalidate(
        self,
        operation: str,
        parser_name: str,
        target: CacheTarget,
        data_version: Optional[str] = None,
    ) -> bool:
        """Drop one entry. Returns True if it existed."""
        key = build_cache_key(operation, parser_name, target, data_version)
        if not self.enabled or self.cache is None:
            return False
        return bool(self.cache.delete(key))

    def clear(self) -> None:
        """Drop every entry, for all parsers and targets."""
        if not self.enabled or self.cache is None:
            return
        self.cache.clear()
        logger.info("Result cache cleared")

    def stats(self) -> dict:
        """Entry count, directory and on-disk volume, or just {"enabled": False}."""
        if not self.enabled or self.cache is None:
            return {"enabled": False}

        return {
            "enabled": True,
            "size": len(self.cache),
            "directory": self.cache.directory,
            "volume": self.cache.volume(),
        }

    def close(self) -> None:
        """Close the underlying diskcache connection."""
        if self.cache is not None:
            self.cache.close()

    def __enter__(self) -> ResultCache:
        return self

    def __exit__(self, *args) -> None:
        self.close()

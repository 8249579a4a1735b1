"""
응답 캐시 모듈.

HTTP 클라이언트 래퍼가 외부 API 응답을 보관하는 인메모리 캐시를 제공합니다.
항목마다 TTL을 [ttl_min, ttl_max] 구간에서 무작위로 뽑아 만료 시점을 분산시키고,
만료 항목은 조회 시점에 지연 삭제합니다 (백그라운드 정리 없음).

크기 제한이나 LRU 축출은 없습니다. 프로세스가 살아 있는 동안 키 수만큼 커질 수 있습니다.
"""

import json
import random
import time
from collections.abc import Callable, Mapping
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

logger = structlog.get_logger(__name__)


def make_cache_key(
    endpoint: str, params: Mapping[str, Any] | None = None, prefix: str = ""
) -> str:
    """
    (엔드포인트, 파라미터)로부터 결정적 캐시 키 생성.

    파라미터는 키 순서와 무관하게 같은 문자열이 되도록 정렬 후 직렬화합니다.
    None과 빈 dict는 같은 키를 만듭니다.
    """
    params_str = json.dumps(
        dict(params or {}), sort_keys=True, separators=(",", ":"), default=str
    )
    return f"{prefix}{endpoint}:{params_str}"


class CacheStats(BaseModel):
    """캐시 통계 정보."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    total_size: int = 0

    @property
    def hit_rate(self) -> float:
        """캐시 적중률 계산."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class CacheEntry(BaseModel):
    """캐시 항목."""

    key: str
    payload: Any
    created_at: float
    expires_at: float

    @property
    def ttl(self) -> float:
        return self.expires_at - self.created_at

    def is_expired(self, now: float) -> bool:
        """`now`가 만료 시점을 지났는지 확인."""
        return now > self.expires_at


class CacheStore(BaseModel):
    """
    지터(jitter) TTL 응답 캐시.

    특징:
    - 삽입마다 독립적으로 샘플링되는 TTL
    - 조회 시 만료 확인 후 지연 삭제
    - 시계(clock)와 난수원(rng) 주입 가능 (테스트용)
    """

    ttl_min: float = 60.0
    ttl_max: float = 120.0
    clock: Callable[[], float] = Field(default=time.time, exclude=True)
    rng: random.Random = Field(default_factory=random.Random, exclude=True)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    _entries: dict[str, CacheEntry] = PrivateAttr(default_factory=dict)
    _stats: CacheStats = PrivateAttr(default_factory=CacheStats)

    @model_validator(mode="after")
    def _check_ttl_bounds(self) -> "CacheStore":
        if self.ttl_min <= 0 or self.ttl_max <= 0:
            raise ValueError("cache TTL bounds must be positive")
        if self.ttl_min > self.ttl_max:
            raise ValueError(
                f"ttl_min ({self.ttl_min}) must not exceed ttl_max ({self.ttl_max})"
            )
        return self

    def sample_ttl(self) -> float:
        """[ttl_min, ttl_max] 구간의 균등 분포 TTL (초)."""
        return self.rng.uniform(self.ttl_min, self.ttl_max)

    def get(self, key: str) -> Any | None:
        """캐시에서 값 조회. 없거나 만료되었으면 None."""
        entry = self._entries.get(key)
        if entry is None:
            self._stats.misses += 1
            return None

        if entry.is_expired(self.clock()):
            del self._entries[key]
            self._stats.misses += 1
            self._stats.evictions += 1
            logger.debug("cache_expired", key=key)
            return None

        self._stats.hits += 1
        logger.debug("cache_hit", key=key)
        return entry.payload

    def put(self, key: str, payload: Any) -> CacheEntry:
        """캐시에 값 저장 (기존 항목 덮어쓰기)."""
        now = self.clock()
        ttl = self.sample_ttl()
        entry = CacheEntry(key=key, payload=payload, created_at=now, expires_at=now + ttl)
        self._entries[key] = entry

        logger.debug("cache_set", key=key, ttl=round(ttl, 2))
        return entry

    def clear(self) -> int:
        """전체 캐시 삭제. 삭제된 항목 수를 반환."""
        count = len(self._entries)
        self._entries.clear()
        logger.info("cache_cleared_all", count=count)
        return count

    def size(self) -> int:
        """현재 저장된 항목 수 (만료되었지만 아직 조회되지 않은 항목 포함)."""
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def stats(self) -> CacheStats:
        """캐시 통계 조회."""
        self._stats.total_size = len(self._entries)
        return self._stats.model_copy()

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Protocol, Set, Tuple

from promotion_gate.governance.audit import AuditLogger
from promotion_gate.governance.records import BuildRecordStore
from promotion_gate.schemas.core import Build

if TYPE_CHECKING:
    from promotion_gate.governance.processes import PromotionProcess

logger = logging.getLogger(__name__)


class PromotionScheduler(Protocol):
    def reconsider_promotion(self, process: 'PromotionProcess', build: Build) -> None: ...


@dataclass
class QueuedPromotion:
    process_name: str
    build_id: str
    env: Dict[str, str] = field(default_factory=dict)


class PromotionQueue:
    """Queues a promotion once every condition of its process is met."""

    def __init__(self, store: BuildRecordStore, audit: Optional[AuditLogger] = None) -> None:
        self.store = store
        self.audit = audit
        self._queued: List[QueuedPromotion] = []
        self._seen: Set[Tuple[str, str]] = set()
        self._lock = threading.Lock()

    def reconsider_promotion(self, process: 'PromotionProcess', build: Build) -> None:
        badges = process.is_qualified(build, self.store)
        if badges is None:
            logger.debug("%s not yet qualified for %s", build.id, process.name)
            return
        env: Dict[str, str] = {}
        for badge in badges:
            env.update(badge.build_env_vars())
        key = (process.name, build.id)
        with self._lock:
            if key in self._seen:
                return
            self._seen.add(key)
            self._queued.append(QueuedPromotion(process.name, build.id, env))
        logger.info("Queued promotion %s for %s", process.name, build.id)
        if self.audit is not None:
            self.audit.log('PromotionQueue', 'promotion_queued', {'process': process.name, 'build': build.id})

    def pending(self) -> List[QueuedPromotion]:
        with self._lock:
            return list(self._queued)

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from promotion_gate.config import get_settings
from promotion_gate.governance.condition import ManualCondition
from promotion_gate.governance.records import BuildRecordStore
from promotion_gate.schemas.core import ApprovalRecord, Build

logger = logging.getLogger(__name__)

DEFAULT_PROCESSES = '''
processes:
  release:
    conditions:
      - kind: manual
        users: "release-managers, !interns"
        parameters:
          - type: choice
            name: TARGET
            choices: [staging, production]
          - type: string
            name: CHANGE_TICKET
'''


class UnknownProcessError(KeyError):
    pass


class PromotionProcess(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    conditions: List[ManualCondition] = Field(default_factory=list)

    @property
    def manual_condition(self) -> Optional[ManualCondition]:
        return self.conditions[0] if self.conditions else None

    def is_qualified(self, build: Build, store: BuildRecordStore) -> Optional[List[ApprovalRecord]]:
        """Badges of every condition, or None while any condition is pending."""
        badges: List[ApprovalRecord] = []
        for condition in self.conditions:
            badge = condition.is_met(self, build, store)
            if badge is None:
                return None
            badges.append(badge)
        return badges


def parse_processes(raw: Dict[str, Any]) -> Dict[str, PromotionProcess]:
    entries = (raw or {}).get('processes', raw) or {}
    processes: Dict[str, PromotionProcess] = {}
    for name, body in entries.items():
        body = body or {}
        processes[name] = PromotionProcess(name=name, conditions=body.get('conditions', []))
    return processes


class ProcessStore:
    """Promotion processes configured in YAML; reloaded as a whole."""

    def __init__(self, settings=None) -> None:
        self.settings = settings or get_settings()
        self.path = Path(self.settings.PROCESSES_PATH)
        self._lock = threading.Lock()
        self._processes = self._load()

    def _load(self) -> Dict[str, PromotionProcess]:
        if self.path.exists():
            raw = yaml.safe_load(self.path.read_text(encoding='utf-8'))
        else:
            raw = yaml.safe_load(DEFAULT_PROCESSES)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(DEFAULT_PROCESSES, encoding='utf-8')
            logger.info("Seeded default promotion processes at %s", self.path)
        return parse_processes(raw)

    def reload(self) -> None:
        processes = self._load()
        with self._lock:
            self._processes = processes

    def replace(self, process: PromotionProcess) -> None:
        with self._lock:
            updated = dict(self._processes)
            updated[process.name] = process
            self._processes = updated

    def get(self, name: str) -> PromotionProcess:
        with self._lock:
            process = self._processes.get(name)
        if process is None:
            raise UnknownProcessError(name)
        return process

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._processes)

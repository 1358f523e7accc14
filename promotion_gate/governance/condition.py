"""Manual promotion condition.

A build only qualifies for a promotion process guarded by this condition once
an authorized principal approves it. The approval is stored as an
:class:`ApprovalRecord` on the build, and at most one record per process may
exist for a build.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, List, Literal, Mapping, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

from promotion_gate.governance import principals as matcher
from promotion_gate.governance.parameters import (
    InvalidParameterError,
    ParameterDefinition,
    find_definition,
)
from promotion_gate.governance.records import BuildRecordStore
from promotion_gate.schemas.core import ApprovalRecord, Build, Principal
from promotion_gate.telemetry import count, span

if TYPE_CHECKING:
    from promotion_gate.governance.processes import PromotionProcess
    from promotion_gate.governance.scheduler import PromotionScheduler

logger = logging.getLogger(__name__)


class ApprovalDenied(RuntimeError):
    def __init__(self, process_name: str, build_id: str) -> None:
        super().__init__(f"Approval of {process_name} for {build_id} is not permitted")
        self.process_name = process_name
        self.build_id = build_id


def check_satisfied(approvals: Iterable[ApprovalRecord], process_name: str) -> Optional[ApprovalRecord]:
    for approval in approvals:
        if approval.process_name == process_name:
            return approval
    return None


class ManualCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal['manual'] = 'manual'
    users: str = ''
    parameters: List[ParameterDefinition] = Field(default_factory=list)

    @property
    def principals(self) -> Set[str]:
        """Raw tokens, negated ones included. Prefer the allowed/disallowed views."""
        return matcher.parse_all(self.users)

    @property
    def allowed_principals(self) -> Set[str]:
        return matcher.parse_allowed(self.users)

    @property
    def disallowed_principals(self) -> Set[str]:
        return matcher.parse_disallowed(self.users)

    def get_parameter_definition(self, name: str):
        return find_definition(self.parameters, name)

    def is_met(self, process: 'PromotionProcess', build: Build, store: BuildRecordStore) -> Optional[ApprovalRecord]:
        with span('condition.is_met'):
            return check_satisfied(store.get_approvals(build), process.name)

    def is_authorized(self, principal: Principal) -> bool:
        allowed = self.allowed_principals
        if allowed and not matcher.matches(allowed, principal.name, principal.groups):
            return False
        if matcher.matches(self.disallowed_principals, principal.name, principal.groups):
            return False
        return True

    def can_approve(
        self,
        process: 'PromotionProcess',
        principal: Principal,
        build: Build,
        store: BuildRecordStore,
    ) -> bool:
        if not self.is_authorized(principal):
            return False
        # only one approval per process and build
        return self.is_met(process, build, store) is None

    def resolve_parameters(self, raw_inputs: Mapping[str, Any]) -> list:
        for name in raw_inputs:
            if self.get_parameter_definition(name) is None:
                raise InvalidParameterError(name, f"No such parameter definition: {name}")
        return [
            definition.create_value(raw_inputs[definition.name])
            for definition in self.parameters
            if definition.name in raw_inputs
        ]

    def approve(
        self,
        process: 'PromotionProcess',
        principal: Principal,
        build: Build,
        store: BuildRecordStore,
        raw_inputs: Optional[Mapping[str, Any]] = None,
        scheduler: Optional['PromotionScheduler'] = None,
    ) -> ApprovalRecord:
        """Record ``principal``'s approval of ``process`` for ``build``.

        Raises:
            ApprovalDenied: principal not permitted or build already approved
            InvalidParameterError: undeclared parameter or rejected value
        """
        raw_inputs = raw_inputs or {}
        with span('condition.approve'), store.locks.hold(build):
            if not self.can_approve(process, principal, build, store):
                count('approval.denied')
                raise ApprovalDenied(process.name, build.id)
            try:
                values = self.resolve_parameters(raw_inputs)
            except InvalidParameterError:
                count('approval.invalid_parameter')
                raise
            record = ApprovalRecord(
                process_name=process.name,
                principal_name=principal.name,
                parameter_values=tuple(values),
            )
            store.add_approval(build, record)
        count('approval.granted')
        logger.info("%s approved %s for %s", principal.name, process.name, build.id)

        if scheduler is not None:
            scheduler.reconsider_promotion(process, build)
        return record

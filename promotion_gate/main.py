from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

import typer
from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

from promotion_gate.config import Settings, configure_logging, get_settings
from promotion_gate.governance.audit import AuditLogger
from promotion_gate.governance.condition import ApprovalDenied
from promotion_gate.governance.parameters import InvalidParameterError
from promotion_gate.governance.processes import ProcessStore, PromotionProcess, UnknownProcessError
from promotion_gate.governance.records import BuildRecordStore
from promotion_gate.governance.scheduler import PromotionQueue
from promotion_gate.schemas.core import ApprovalRecord, ApprovalResult, Build, Principal
from promotion_gate.telemetry import summary

logger = logging.getLogger(__name__)


class ApprovalRequest(BaseModel):
    parameters: Dict[str, Any] = Field(default_factory=dict)


class BuildStatus(BaseModel):
    process: str
    build: str
    satisfied: bool
    record: Optional[ApprovalRecord] = None


class GateRuntime:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.audit = AuditLogger(self.settings)
        self.processes = ProcessStore(self.settings)
        self.records = BuildRecordStore(self.settings)
        self.scheduler = PromotionQueue(self.records, self.audit)

    def _resolve(self, process: Union[str, PromotionProcess]) -> PromotionProcess:
        if isinstance(process, PromotionProcess):
            return process
        return self.processes.get(process)

    def _condition(self, process: PromotionProcess):
        condition = process.manual_condition
        if condition is None:
            raise UnknownProcessError(f"{process.name} has no manual condition")
        return condition

    def status(self, process: Union[str, PromotionProcess], build: Build) -> BuildStatus:
        process = self._resolve(process)
        record = self._condition(process).is_met(process, build, self.records)
        return BuildStatus(process=process.name, build=build.id, satisfied=record is not None, record=record)

    def can_approve(self, process: Union[str, PromotionProcess], principal: Principal, build: Build) -> bool:
        process = self._resolve(process)
        return self._condition(process).can_approve(process, principal, build, self.records)

    def submit_approval(
        self,
        process: Union[str, PromotionProcess],
        principal: Principal,
        build: Build,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> ApprovalResult:
        process = self._resolve(process)
        condition = self._condition(process)
        payload = {
            'process': process.name,
            'build': build.id,
            'principal': principal.name,
            'groups': sorted(principal.groups),
        }
        try:
            record = condition.approve(
                process,
                principal,
                build,
                self.records,
                raw_inputs=parameters or {},
                scheduler=self.scheduler,
            )
        except ApprovalDenied as exc:
            logger.warning("%s", exc)
            self.audit.log('GateRuntime', 'approval_denied', payload)
            return ApprovalResult(status='denied', process=process.name, build=build.id)
        except InvalidParameterError as exc:
            logger.warning("Rejected approval of %s for %s: %s", process.name, build.id, exc)
            self.audit.log('GateRuntime', 'approval_invalid_parameter', {**payload, 'parameter': exc.name})
            return ApprovalResult(
                status='invalid_parameter', process=process.name, build=build.id, detail=str(exc)
            )
        self.audit.log(
            'GateRuntime',
            'approval_granted',
            {**payload, 'parameters': [value.model_dump() for value in record.parameter_values]},
        )
        return ApprovalResult(status='approved', process=process.name, build=build.id, record=record)


runtime = GateRuntime()

fastapi_app = FastAPI(title='Manual Promotion Gate')


def _principal(user: Optional[str], groups: Optional[str]) -> Principal:
    user = (user or '').strip()
    if not user:
        return Principal.anonymous()
    return Principal.of(user, (group.strip() for group in (groups or '').split(',')))


def _lookup(process: str) -> PromotionProcess:
    try:
        found = runtime.processes.get(process)
    except UnknownProcessError:
        found = None
    if found is None or found.manual_condition is None:
        raise HTTPException(status_code=404, detail='Promotion process not found')
    return found


@fastapi_app.get('/healthz')
def healthz() -> Dict[str, str]:
    return {'status': 'ok'}


@fastapi_app.get('/processes')
def list_processes() -> List[str]:
    return runtime.processes.names()


@fastapi_app.get('/processes/{process}/builds/{job}/{number}', response_model=BuildStatus)
def build_status(process: str, job: str, number: int):
    return runtime.status(_lookup(process), Build(job=job, number=number))


@fastapi_app.post('/processes/{process}/builds/{job}/{number}/approve', response_model=ApprovalRecord)
def approve_build(
    process: str,
    job: str,
    number: int,
    request: ApprovalRequest,
    x_remote_user: Optional[str] = Header(default=None),
    x_remote_groups: Optional[str] = Header(default=None),
):
    found = _lookup(process)
    principal = _principal(x_remote_user, x_remote_groups)
    result = runtime.submit_approval(found, principal, Build(job=job, number=number), request.parameters)
    if result.status == 'denied':
        raise HTTPException(status_code=403, detail='Approval not permitted')
    if result.status == 'invalid_parameter':
        raise HTTPException(status_code=400, detail=result.detail)
    return result.record


@fastapi_app.get('/promotions/queued')
def queued_promotions():
    return [
        {'process': item.process_name, 'build': item.build_id, 'parameters': sorted(item.env)}
        for item in runtime.scheduler.pending()
    ]


@fastapi_app.get('/metrics/gate')
def gate_metrics():
    return summary()


cli = typer.Typer(help='Manual promotion gate CLI')


@cli.callback()
def setup():
    configure_logging(runtime.settings)


@cli.command()
def approve(
    process: str,
    job: str,
    number: int,
    user: str = typer.Option(..., help='Approving principal'),
    group: List[str] = typer.Option([], help='Group of the approving principal'),
    param: List[str] = typer.Option([], help='Parameter as NAME=VALUE'),
):
    "Approve a build for a promotion process."
    parameters: Dict[str, Any] = {}
    for item in param:
        name, sep, value = item.partition('=')
        if not sep:
            raise typer.BadParameter(f'Expected NAME=VALUE, got {item}')
        parameters[name] = value
    try:
        result = runtime.submit_approval(process, Principal.of(user, group), Build(job=job, number=number), parameters)
    except UnknownProcessError:
        raise typer.BadParameter(f'Unknown promotion process {process}')
    if result.status == 'denied':
        typer.echo('Approval not permitted', err=True)
        raise typer.Exit(code=1)
    if result.status == 'invalid_parameter':
        typer.echo(result.detail, err=True)
        raise typer.Exit(code=2)
    typer.echo(f"Approved {process} for {result.build}")


@cli.command()
def status(process: str, job: str, number: int):
    "Show whether a build has been approved for a promotion process."
    try:
        current = runtime.status(process, Build(job=job, number=number))
    except UnknownProcessError:
        raise typer.BadParameter(f'Unknown promotion process {process}')
    typer.echo(current.model_dump_json(indent=2))


@cli.command()
def processes():
    "List configured promotion processes."
    for name in runtime.processes.names():
        typer.echo(name)


app = fastapi_app


if __name__ == '__main__':
    cli()

from __future__ import annotations

from datetime import datetime
from typing import Dict, FrozenSet, Iterable, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer

ParameterType = Literal['string', 'text', 'password', 'boolean', 'choice']
ResultStatus = Literal['approved', 'denied', 'invalid_parameter']

ANONYMOUS = 'anonymous'
SECRET_MASK = '[masked]'


class Principal(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    groups: FrozenSet[str] = Field(default_factory=frozenset)

    @classmethod
    def anonymous(cls) -> 'Principal':
        return cls(name=ANONYMOUS)

    @classmethod
    def of(cls, name: str, groups: Iterable[str] = ()) -> 'Principal':
        return cls(name=name, groups=frozenset(g for g in groups if g))


class Build(BaseModel):
    model_config = ConfigDict(frozen=True)

    job: str
    number: int

    @property
    def id(self) -> str:
        return f"{self.job}#{self.number}"


class ParameterValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: ParameterType
    value: Union[bool, str]
    sensitive: bool = False

    @field_serializer('value')
    def serialize_value(self, value: Union[bool, str]) -> Union[bool, str]:
        return SECRET_MASK if self.sensitive else value

    def masked(self) -> 'ParameterValue':
        """Copy whose value is safe to persist or display."""
        if not self.sensitive:
            return self
        return self.model_copy(update={'value': SECRET_MASK})

    def env_vars(self) -> Dict[str, str]:
        if isinstance(self.value, bool):
            text = 'true' if self.value else 'false'
        else:
            text = self.value
        return {self.name: text, self.name.upper(): text}


class ApprovalRecord(BaseModel):
    """Evidence that a promotion process was approved for one build."""

    model_config = ConfigDict(frozen=True)

    process_name: str
    principal_name: Optional[str] = None
    parameter_values: Tuple[ParameterValue, ...] = ()
    approved_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def user_name(self) -> str:
        return self.principal_name if self.principal_name is not None else 'N/A'

    def build_env_vars(self) -> Dict[str, str]:
        env: Dict[str, str] = {}
        for value in self.parameter_values:
            env.update(value.env_vars())
        return env


class ApprovalResult(BaseModel):
    status: ResultStatus
    process: str
    build: str
    record: Optional[ApprovalRecord] = None
    detail: Optional[str] = None

    @property
    def approved(self) -> bool:
        return self.status == 'approved'

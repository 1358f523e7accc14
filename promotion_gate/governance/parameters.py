from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from promotion_gate.schemas.core import ParameterValue

TRUE_WORDS = {'true', 'on', 'yes', '1'}
FALSE_WORDS = {'false', 'off', 'no', '0', ''}


class InvalidParameterError(ValueError):
    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class _Parameter(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ''

    @field_validator('name')
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError('parameter name must not be blank')
        return value

    def _text(self, raw: Any, default: str) -> str:
        if raw is None:
            return default
        if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
            raise InvalidParameterError(self.name, f"Parameter {self.name} expects a string value")
        return str(raw)


class StringParameter(_Parameter):
    type: Literal['string'] = 'string'
    default: str = ''

    def create_value(self, raw: Any) -> ParameterValue:
        return ParameterValue(name=self.name, type=self.type, value=self._text(raw, self.default))


class TextParameter(StringParameter):
    type: Literal['text'] = 'text'


class PasswordParameter(_Parameter):
    type: Literal['password'] = 'password'
    default: str = ''

    def create_value(self, raw: Any) -> ParameterValue:
        return ParameterValue(
            name=self.name,
            type=self.type,
            value=self._text(raw, self.default),
            sensitive=True,
        )


class BooleanParameter(_Parameter):
    type: Literal['boolean'] = 'boolean'
    default: bool = False

    def create_value(self, raw: Any) -> ParameterValue:
        if raw is None:
            value = self.default
        elif isinstance(raw, bool):
            value = raw
        elif isinstance(raw, str) and raw.strip().lower() in TRUE_WORDS:
            value = True
        elif isinstance(raw, str) and raw.strip().lower() in FALSE_WORDS:
            value = False
        else:
            raise InvalidParameterError(self.name, f"Parameter {self.name} expects a boolean, got {raw!r}")
        return ParameterValue(name=self.name, type=self.type, value=value)


class ChoiceParameter(_Parameter):
    type: Literal['choice'] = 'choice'
    choices: List[str]

    @field_validator('choices')
    @classmethod
    def _has_choices(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError('choice parameter needs at least one choice')
        return value

    @property
    def default(self) -> str:
        return self.choices[0]

    def create_value(self, raw: Any) -> ParameterValue:
        value = self._text(raw, self.default)
        if value not in self.choices:
            raise InvalidParameterError(
                self.name, f"Illegal choice for parameter {self.name}: {value}"
            )
        return ParameterValue(name=self.name, type=self.type, value=value)


ParameterDefinition = Annotated[
    Union[StringParameter, TextParameter, PasswordParameter, BooleanParameter, ChoiceParameter],
    Field(discriminator='type'),
]


def find_definition(definitions: List[Any], name: str) -> Optional[Any]:
    for definition in definitions or []:
        if definition.name == name:
            return definition
    return None

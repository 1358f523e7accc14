import pytest
from pydantic import TypeAdapter, ValidationError

from promotion_gate.governance.parameters import (
    BooleanParameter,
    ChoiceParameter,
    InvalidParameterError,
    ParameterDefinition,
    PasswordParameter,
    StringParameter,
    find_definition,
)


def test_definitions_are_selected_by_type():
    adapter = TypeAdapter(ParameterDefinition)
    choice = adapter.validate_python({'type': 'choice', 'name': 'TARGET', 'choices': ['staging', 'prod']})
    text = adapter.validate_python({'type': 'text', 'name': 'NOTES'})
    assert isinstance(choice, ChoiceParameter)
    assert text.create_value('line one\nline two').type == 'text'


def test_choice_needs_choices_and_rejects_unknown_values():
    with pytest.raises(ValidationError):
        ChoiceParameter(name='TARGET', choices=[])
    choice = ChoiceParameter(name='TARGET', choices=['staging', 'prod'])
    assert choice.create_value(None).value == 'staging'
    with pytest.raises(InvalidParameterError) as excinfo:
        choice.create_value('qa')
    assert excinfo.value.name == 'TARGET'


def test_boolean_accepts_form_words():
    flag = BooleanParameter(name='DRY_RUN')
    assert flag.create_value('on').value is True
    assert flag.create_value('False').value is False
    assert flag.create_value(True).value is True
    assert flag.create_value(None).value is False
    with pytest.raises(InvalidParameterError):
        flag.create_value('maybe')


def test_string_rejects_structured_values():
    ticket = StringParameter(name='CHANGE_TICKET', default='none')
    assert ticket.create_value(None).value == 'none'
    assert ticket.create_value(42).value == '42'
    with pytest.raises(InvalidParameterError):
        ticket.create_value(['a'])


def test_password_values_are_sensitive():
    value = PasswordParameter(name='deploy_token').create_value('s3cret')
    assert value.sensitive is True
    assert value.env_vars() == {'deploy_token': 's3cret', 'DEPLOY_TOKEN': 's3cret'}


def test_blank_names_are_rejected_and_lookup_is_by_name():
    with pytest.raises(ValidationError):
        StringParameter(name='  ')
    definitions = [StringParameter(name='A'), BooleanParameter(name='B')]
    assert find_definition(definitions, 'B') is definitions[1]
    assert find_definition(definitions, 'C') is None

import pytest

from promotion_gate.governance.audit import AuditLogger
from promotion_gate.governance.condition import ManualCondition
from promotion_gate.governance.parameters import ChoiceParameter
from promotion_gate.governance.processes import ProcessStore, PromotionProcess, UnknownProcessError
from promotion_gate.governance.scheduler import PromotionQueue
from promotion_gate.schemas.core import Build, Principal

CUSTOM = '''
processes:
  qa:
    conditions:
      - kind: manual
        users: "qa-team"
  production:
    conditions:
      - kind: manual
        users: "ops, !contractors"
        parameters:
          - {type: boolean, name: CANARY, default: true}
'''


def test_missing_file_is_seeded_with_default_release(settings):
    store = ProcessStore(settings)
    assert settings.PROCESSES_PATH.exists()
    release = store.get('release')
    condition = release.manual_condition
    assert condition.allowed_principals == {'release-managers'}
    assert condition.disallowed_principals == {'interns'}
    assert isinstance(condition.get_parameter_definition('TARGET'), ChoiceParameter)


def test_yaml_processes_and_reload(settings):
    settings.PROCESSES_PATH.write_text(CUSTOM, encoding='utf-8')
    store = ProcessStore(settings)
    assert store.names() == ['production', 'qa']
    production = store.get('production')
    assert len(production.conditions) == 1
    assert production.manual_condition.get_parameter_definition('CANARY').default is True

    settings.PROCESSES_PATH.write_text('processes:\n  qa: {}\n', encoding='utf-8')
    store.reload()
    assert store.names() == ['qa']
    assert store.get('qa').conditions == []
    with pytest.raises(UnknownProcessError):
        store.get('production')


def test_replace_swaps_a_single_process(settings):
    store = ProcessStore(settings)
    before = store.get('release')
    store.replace(PromotionProcess(name='release', conditions=[ManualCondition(users='alice')]))
    assert store.get('release').manual_condition.users == 'alice'
    assert before.manual_condition.users == 'release-managers, !interns'


def test_queue_holds_promotion_until_approved(settings, store):
    settings.PROCESSES_PATH.write_text(CUSTOM, encoding='utf-8')
    production = ProcessStore(settings).get('production')
    audit = AuditLogger(settings)
    queue = PromotionQueue(store, audit)
    build = Build(job='api', number=7)

    queue.reconsider_promotion(production, build)
    assert queue.pending() == []
    assert production.is_qualified(build, store) is None

    condition = production.manual_condition
    condition.approve(production, Principal.of('dana', ['ops']), build, store, raw_inputs={'CANARY': 'no'}, scheduler=queue)
    queue.reconsider_promotion(production, build)

    queued = queue.pending()
    assert len(queued) == 1
    assert queued[0].process_name == 'production'
    assert queued[0].build_id == 'api#7'
    assert queued[0].env == {'CANARY': 'false'}
    assert [entry['action'] for entry in audit.recent()] == ['promotion_queued']

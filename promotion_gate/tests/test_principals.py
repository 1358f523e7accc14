import pytest

from promotion_gate.governance.principals import (
    matches,
    matches_by_group,
    matches_by_name,
    parse_all,
    parse_allowed,
    parse_disallowed,
)

SPECS = [
    ('', set(), set()),
    (' ,u1,  u2 ,  u3,', {'u1', 'u2', 'u3'}, set()),
    ('u1, ! u2 ,!u3,u4', {'u1', 'u4'}, {'u2', 'u3'}),
]


@pytest.mark.parametrize('spec, allowed, disallowed', SPECS)
def test_spec_is_split_into_allowed_and_disallowed(spec, allowed, disallowed):
    assert parse_allowed(spec) == allowed
    assert parse_disallowed(spec) == disallowed


@pytest.mark.parametrize('spec', [s for s, _, _ in SPECS] + ['!, !  ,,', ' !x ,y,! z'])
def test_negated_token_never_lands_in_allowed(spec):
    assert not parse_allowed(spec) & parse_disallowed(spec)
    assert all(not name.startswith('!') for name in parse_allowed(spec))


def test_name_listed_both_ways_appears_in_both_sets():
    assert parse_allowed('a, !a') == {'a'}
    assert parse_disallowed('a, !a') == {'a'}


def test_none_and_bare_negation_degrade_to_empty_sets():
    assert parse_allowed(None) == set()
    assert parse_disallowed(None) == set()
    assert parse_disallowed('!, ! ,!') == set()


def test_parse_all_keeps_negated_tokens():
    assert parse_all('u1, ! u2 ,,') == {'u1', '! u2'}


def test_matching_is_exact_and_case_sensitive():
    names = {'alice', 'release-managers'}
    assert matches_by_name(names, 'alice')
    assert not matches_by_name(names, 'Alice')
    assert matches_by_group(names, ['devs', 'release-managers'])
    assert not matches_by_group(names, [])
    assert matches(names, 'bob', {'release-managers'})
    assert not matches(names, 'bob', {'devs'})

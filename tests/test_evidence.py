import pytest

from wpvet.versioning.evidence import Presence, VersionEvidence, has_concrete, select_winner


def test_concrete_beats_higher_confidence_unknown():
    unknown = VersionEvidence.present_unknown(95, 'readme-html')
    concrete = VersionEvidence.concrete('6.4.2', 60, 'js-fingerprint')
    winner = select_winner([unknown, concrete])
    assert winner is concrete
    assert winner.reported_version == '6.4.2'


def test_confidence_decides_within_tier():
    low = VersionEvidence.concrete('6.3', 70, 'ver-param')
    high = VersionEvidence.concrete('6.4', 95, 'meta-generator')
    assert select_winner([low, high]) is high


def test_first_registered_wins_ties():
    first = VersionEvidence.concrete('1.0', 80, 'a')
    second = VersionEvidence.concrete('2.0', 80, 'b')
    assert select_winner([first, second]) is first
    assert select_winner([second, first]) is second


@pytest.mark.parametrize('candidates', [
    [],
    [None],
    [VersionEvidence(Presence.ABSENT, 100, 'x')],
])
def test_nothing_usable(candidates):
    assert select_winner(candidates) is None


def test_unknown_only():
    winner = select_winner([None, VersionEvidence.present_unknown(50, 'wp-paths')])
    assert winner.reported_version == 'unknown'
    assert winner.to_dict() == {
        'version': 'unknown',
        'presence': 'present-unknown',
        'confidence': 50,
        'source': 'wp-paths',
    }


def test_has_concrete():
    assert not has_concrete([None, VersionEvidence.present_unknown(70, 'wp-json')])
    assert has_concrete([VersionEvidence.concrete('6.0', 85, 'readme-html')])

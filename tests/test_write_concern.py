import pytest

from safewrite import WriteConcern
from safewrite.errors import ConfigurationError


def test_document():
    wc = WriteConcern()
    assert wc.document == {}
    assert wc.is_server_default
    assert wc.acknowledged

    wc = WriteConcern(w=2, wtimeout=100, fsync=True)
    assert wc.document == {'w': 2, 'wtimeout': 100, 'fsync': True}
    assert wc.w == 2
    assert wc.wtimeout == 100
    assert wc.fsync is True
    assert wc.j is None
    assert not wc.is_server_default

    doc = wc.document
    doc['w'] = 5
    assert wc.w == 2


def test_acknowledged():
    assert not WriteConcern(w=0).acknowledged
    assert WriteConcern(w=1).acknowledged
    assert WriteConcern(w='majority').acknowledged
    assert WriteConcern(j=True).acknowledged


def test_from_document():
    assert WriteConcern.from_document({'w': 2, 'journal': True}) == WriteConcern(w=2, j=True)
    assert WriteConcern.from_document({}) == WriteConcern()
    assert WriteConcern.from_document(None) == WriteConcern()
    with pytest.raises(ConfigurationError):
        WriteConcern.from_document({'w': 1, 'upsert': True})


@pytest.mark.parametrize("kwargs", [
    {'w': -1},
    {'w': 1.5},
    {'w': True},
    {'wtimeout': '10'},
    {'wtimeout': -5},
    {'j': 1},
    {'fsync': 'yes'},
    {'j': True, 'fsync': True},
    {'w': 0, 'j': True},
    {'w': 0, 'fsync': True},
])
def test_invalid(kwargs):
    with pytest.raises(ConfigurationError):
        WriteConcern(**kwargs)


def test_repr_and_eq():
    assert repr(WriteConcern(w=2, fsync=True)) == "WriteConcern(w=2, fsync=True)"
    assert WriteConcern(w=1) == WriteConcern(w=1)
    assert WriteConcern(w=1) != WriteConcern(w=2)
    assert WriteConcern(w=1) != {'w': 1}

"""Anonymous identity and the persisted name counter."""

import pytest

from roomchat.errors import ValidationError
from roomchat.identity import AnonymousCounter, IdentityStore


def test_first_run_creates_anonymous_participant(tmp_path):
    store = IdentityStore(tmp_path / "user.json")
    user = store.user
    assert user.name == "Anonymous 1"
    assert user.id
    assert (tmp_path / "user.json").exists()
    assert (tmp_path / "anonymous_counter").read_text() == "1"


def test_identity_survives_restart(tmp_path):
    first = IdentityStore(tmp_path / "user.json").user
    second = IdentityStore(tmp_path / "user.json").user
    assert first == second


def test_counter_keeps_increasing_across_instances(tmp_path):
    path = tmp_path / "anonymous_counter"
    assert AnonymousCounter(path).next() == 1
    counter = AnonymousCounter(path)
    assert counter.value == 1
    assert counter.next() == 2


def test_corrupt_counter_starts_from_zero(tmp_path):
    path = tmp_path / "anonymous_counter"
    path.write_text("not a number")
    assert AnonymousCounter(path).next() == 1


def test_corrupt_identity_is_replaced(tmp_path):
    path = tmp_path / "user.json"
    path.write_text("{broken")
    user = IdentityStore(path).user
    assert user.name.startswith("Anonymous ")


def test_new_participants_get_distinct_names(tmp_path):
    a = IdentityStore(tmp_path / "a" / "user.json", AnonymousCounter(tmp_path / "counter")).user
    b = IdentityStore(tmp_path / "b" / "user.json", AnonymousCounter(tmp_path / "counter")).user
    assert (a.name, b.name) == ("Anonymous 1", "Anonymous 2")
    assert a.id != b.id


def test_rename_trims_truncates_and_persists(tmp_path):
    store = IdentityStore(tmp_path / "user.json", max_name_length=5)
    original = store.user
    renamed = store.rename("  Alexandra  ")
    assert renamed.name == "Alexa"
    assert renamed.id == original.id
    assert IdentityStore(tmp_path / "user.json").user.name == "Alexa"


def test_blank_rename_is_rejected(tmp_path):
    store = IdentityStore(tmp_path / "user.json")
    with pytest.raises(ValidationError):
        store.rename("   ")
    assert store.user.name == "Anonymous 1"

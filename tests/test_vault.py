"""Tests for the vault data model and serialization."""

import pytest
from pydantic import ValidationError

from formvault.storage import Field, MalformedVaultDataError, Vault, VaultStoreError

BASIC = (
    b"irc\tusername\tAzureDiamond\tpassword\thunter2\tWho's your best friend?\tCthon98\n"
    b"other website dot com\tusername\tCthon98\tpassword\t*********"
    b"\tWho's your best friend?\tAzureDiamond\n"
)


@pytest.fixture
def username() -> Field:
    return Field(prompt=b"username", answer=b"user1@example.test")


@pytest.fixture
def password() -> Field:
    return Field(prompt=b"password", answer=b"password1")


@pytest.mark.parametrize("data", [b"", b"\t\t\t\t\n", b"\n\n\n\n", b"\n\n\n\n\n", b"\t\t\t\n"])
def test_load_empty(data):
    vault = Vault.load(data)
    assert vault.is_empty()
    assert len(vault) == 0
    assert vault.dump() == b""


def test_dump_empty():
    assert Vault().dump() == b""


def test_load_single_row():
    vault = Vault.load(b"irc\tusername\tAzureDiamond\tpassword\thunter2\n")
    assert len(vault) == 1
    assert vault[b"irc"] == (
        Field(prompt=b"username", answer=b"AzureDiamond"),
        Field(prompt=b"password", answer=b"hunter2"),
    )


def test_load_basic():
    vault = Vault.load(BASIC)
    assert sorted(vault.form_names()) == [b"irc", b"other website dot com"]

    first = vault[b"irc"]
    assert [(f.prompt, f.answer) for f in first] == [
        (b"username", b"AzureDiamond"),
        (b"password", b"hunter2"),
        (b"Who's your best friend?", b"Cthon98"),
    ]

    second = vault[b"other website dot com"]
    assert [(f.prompt, f.answer) for f in second] == [
        (b"username", b"Cthon98"),
        (b"password", b"*********"),
        (b"Who's your best friend?", b"AzureDiamond"),
    ]

    # best friends
    assert first[0].answer == second[2].answer
    assert first[2].answer == second[0].answer


def test_round_trip():
    vault = Vault.load(BASIC)
    assert Vault.load(vault.dump()) == vault
    assert sorted(vault.dump().splitlines(keepends=True)) == sorted(
        BASIC.splitlines(keepends=True)
    )


def test_round_trip_empty_form_and_empty_values():
    vault = Vault()
    vault.insert(b"nothing", [])
    vault.insert(b"blank", [Field(prompt=b"", answer=b""), Field(prompt=b"pin", answer=b"")])
    assert Vault.load(vault.dump()) == vault
    assert vault.get(b"nothing") == ()


def test_load_without_trailing_newline():
    vault = Vault.load(b"irc\tusername\tAzureDiamond")
    assert vault[b"irc"] == (Field(prompt=b"username", answer=b"AzureDiamond"),)


@pytest.mark.parametrize(
    "data",
    [
        b"irc\tusername\n",
        b"irc\tusername\tAzureDiamond\tpassword\n",
        b"ok\ta\tb\nirc\tusername\tAzureDiamond\tpassword\n",
    ],
)
def test_load_unpaired_prompt(data):
    with pytest.raises(MalformedVaultDataError):
        Vault.load(data)


def test_malformed_error_hides_contents():
    with pytest.raises(VaultStoreError) as excinfo:
        Vault.load(b"irc\thunter2\n")
    assert "hunter2" not in str(excinfo.value)


def test_load_skips_empty_names():
    vault = Vault.load(b"\tusername\tx\nirc\ta\tb\n\n")
    assert list(vault.form_names()) == [b"irc"]


def test_modify(username, password):
    vault = Vault()
    assert vault.is_empty()

    assert vault.insert(b"asdf", [username, password]) is None
    assert len(vault) == 1
    assert vault.get(b"form name that wasn't inserted") is None
    assert b"asdf" in vault

    # the order of form fields is significant, it should be maintained
    form = vault.get(b"asdf")
    assert form[0] == username
    assert form[1] == password

    assert vault.remove(b"asdf") == (username, password)
    assert vault.is_empty()
    assert vault.remove(b"asdf") is None


def test_insert_returns_previous(username, password):
    vault = Vault()
    vault.insert(b"site", [username])
    assert vault.insert(b"site", [password]) == (username,)
    assert vault[b"site"] == (password,)


@pytest.mark.parametrize("name", [b"", b"a\tb", b"a\nb"])
def test_insert_rejects_bad_names(name, username):
    vault = Vault()
    with pytest.raises(ValueError):
        vault.insert(name, [username])
    assert vault.is_empty()


def test_insert_rejects_non_fields():
    with pytest.raises(TypeError):
        Vault().insert(b"site", [(b"username", b"AzureDiamond")])


@pytest.mark.parametrize("value", [b"a\tb", b"a\nb"])
def test_field_rejects_separators(value):
    with pytest.raises(ValidationError):
        Field(prompt=value, answer=b"ok")
    with pytest.raises(ValidationError):
        Field(prompt=b"ok", answer=value)


def test_field_is_immutable(username):
    with pytest.raises(ValidationError):
        username.answer = b"changed"


def test_form_names_is_one_shot():
    vault = Vault.load(BASIC)
    names = vault.form_names()
    seen = [next(names) for _ in range(len(vault))]
    assert set(seen) == {b"irc", b"other website dot com"}
    with pytest.raises(StopIteration):
        next(names)


def test_getitem_missing():
    with pytest.raises(KeyError):
        Vault()[b"missing"]


def test_constructor_and_equality(username):
    vault = Vault({b"site": [username]})
    assert vault == Vault.load(b"site\tusername\tuser1@example.test\n")
    assert vault != Vault()
    assert dict(vault.items()) == {b"site": (username,)}

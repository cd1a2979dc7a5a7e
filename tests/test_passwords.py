import string

import pytest

from caasazure.passwords import DEFAULT_POLICY, SYMBOLS, Passwords


def test_generate_password_has_exact_composition():
    for _ in range(50):
        password = Passwords.generate_password()
        assert len(password) == 32
        assert sum(c in string.ascii_lowercase for c in password) == 10
        assert sum(c in string.ascii_uppercase for c in password) == 10
        assert sum(c in string.digits for c in password) == 10
        assert sum(c in SYMBOLS for c in password) == 2


def test_generate_password_only_uses_defined_alphabets():
    password = Passwords.generate_password()
    assert Passwords.composition(password)["other"] == 0


def test_generate_password_is_not_repeated():
    seen = {Passwords.generate_password() for _ in range(100)}
    assert len(seen) == 100


def test_generate_password_is_shuffled():
    '''
    Concatenated runs would always start with 10 lowercase letters.
    Over many draws at least one password must not.
    '''
    prefixes = [Passwords.generate_password()[:10] for _ in range(20)]
    assert any(not p.islower() or not p.isalpha() for p in prefixes)


def test_generate_password_custom_policy():
    password = Passwords.generate_password({"digits": 6})
    assert len(password) == 6
    assert password.isdigit()


@pytest.mark.parametrize("policy", [
    {"emoji": 3},
    {"digits": -1},
    {"digits": 0, "symbols": 0},
])
def test_generate_password_rejects_bad_policy(policy):
    with pytest.raises(ValueError):
        Passwords.generate_password(policy)


def test_validate_password():
    assert Passwords.validate_password(Passwords.generate_password())
    assert not Passwords.validate_password("short")
    assert Passwords.validate_password("a" * 10 + "B" * 10 + "1" * 10 + "!!")
    assert DEFAULT_POLICY == {"lowercase": 10, "uppercase": 10, "digits": 10, "symbols": 2}

"""Secret policy, one-time password generation and login hashing."""

import string

import pytest

from iamsync.domain.entities import SecretPolicy
from iamsync.domain.enums import CharacterClass
from iamsync.domain.exceptions import PolicyViolationException
from iamsync.infrastructure.security import (
    generate_password,
    get_password_hash,
    verify_password,
)


def test_default_policy_alphabet_excludes_forbidden_chars() -> None:
    alphabet = SecretPolicy().alphabet()
    for ch in '"@/\\':
        assert ch not in alphabet
    assert "A" in alphabet and "z" in alphabet and "7" in alphabet and "!" in alphabet


def test_generated_passwords_satisfy_default_policy() -> None:
    """Every generated value has length >= 16, every class, no excluded character."""
    policy = SecretPolicy()
    for _ in range(50):
        value = generate_password(policy, "initial-iam-password")
        assert len(value) >= 16
        assert not set(value) & set('"@/\\')
        assert any(c in string.ascii_uppercase for c in value)
        assert any(c in string.ascii_lowercase for c in value)
        assert any(c in string.digits for c in value)
        assert any(c in string.punctuation for c in value)


def test_generated_passwords_differ() -> None:
    policy = SecretPolicy()
    assert len({generate_password(policy) for _ in range(20)}) == 20


def test_short_policy_still_fits_one_of_each_class() -> None:
    """min_length below the class count is raised to four characters."""
    value = generate_password(SecretPolicy(min_length=2))
    assert len(value) == 4
    assert SecretPolicy(min_length=4).is_satisfied_by(value)


def test_policy_without_class_requirement() -> None:
    policy = SecretPolicy(min_length=8, require_each_class=False)
    value = generate_password(policy)
    assert len(value) == 8


def test_required_class_fully_excluded_is_policy_violation() -> None:
    policy = SecretPolicy(excluded_chars=frozenset(string.digits))
    assert policy.allowed_by_class()[CharacterClass.DIGIT] == ""
    with pytest.raises(PolicyViolationException) as exc_info:
        generate_password(policy, "initial-iam-password")
    assert exc_info.value.error_code == "POLICY_VIOLATION"
    assert exc_info.value.details["secret_id"] == "initial-iam-password"
    assert "digit" in exc_info.value.message


def test_non_positive_length_is_policy_violation() -> None:
    with pytest.raises(PolicyViolationException):
        generate_password(SecretPolicy(min_length=0))


def test_everything_excluded_is_policy_violation() -> None:
    everything = frozenset(
        string.ascii_letters + string.digits + string.punctuation
    )
    with pytest.raises(PolicyViolationException):
        generate_password(SecretPolicy(excluded_chars=everything, require_each_class=False))


def test_is_satisfied_by() -> None:
    policy = SecretPolicy(min_length=8)
    assert policy.is_satisfied_by("Abcdef1!")
    assert not policy.is_satisfied_by("Abcde1!")  # too short
    assert not policy.is_satisfied_by("Abcdef1@")  # excluded char
    assert not policy.is_satisfied_by("abcdefg1!")  # no upper


def test_password_hash_round_trip() -> None:
    hashed = get_password_hash("Temp0rary!Pass#word")
    assert hashed != "Temp0rary!Pass#word"
    assert verify_password("Temp0rary!Pass#word", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_rejects_malformed_hash() -> None:
    assert verify_password("anything", "not-a-bcrypt-hash") is False

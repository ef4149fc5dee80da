"""
Unit tests for password hashing, access tokens and identifiers.
"""

import re

from storycraft.core.security import (
    create_access_token,
    decode_access_token,
    extract_token_from_header,
    generate_item_id,
    generate_message_id,
    generate_proposal_id,
    hash_password,
    is_valid_email,
    is_valid_name,
    validate_password,
    verify_password,
)


def test_hash_and_verify_password() -> None:
    hashed = hash_password("secret123", iterations=1000)

    assert hashed.startswith("pbkdf2_sha256$1000$")
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_hash_is_salted() -> None:
    assert hash_password("secret123", iterations=1000) != hash_password("secret123", iterations=1000)


def test_verify_rejects_malformed_hash() -> None:
    assert not verify_password("secret123", "not-a-hash")
    assert not verify_password("secret123", "md5$10$salt$abc")


def test_access_token_round_trip() -> None:
    token = create_access_token("user-uuid-1", "ada@example.com")
    payload = decode_access_token(token)

    assert payload is not None
    assert payload["userId"] == "user-uuid-1"
    assert payload["email"] == "ada@example.com"


def test_tampered_token_is_rejected() -> None:
    token = create_access_token("user-uuid-1", "ada@example.com")
    header_and_claims = token.rsplit(".", 1)[0]
    assert decode_access_token(header_and_claims + ".bad-signature") is None
    assert decode_access_token("garbage") is None


def test_extract_token_from_header() -> None:
    assert extract_token_from_header("Bearer abc.def") == "abc.def"
    assert extract_token_from_header("Basic abc") is None
    assert extract_token_from_header("Bearer ") is None
    assert extract_token_from_header(None) is None


def test_email_validation() -> None:
    assert is_valid_email("ada@example.com")
    assert not is_valid_email("ada@example")
    assert not is_valid_email("ada example@x.com")
    assert not is_valid_email("")


def test_password_rules() -> None:
    assert validate_password("12345") == (False, "Password must be at least 6 characters long")
    assert validate_password("x" * 129) == (False, "Password must be less than 128 characters")
    assert validate_password("123456") == (True, None)


def test_name_rules() -> None:
    assert is_valid_name(" Ada ")
    assert not is_valid_name("   ")
    assert not is_valid_name("a" * 101)


def test_identifier_formats() -> None:
    assert re.fullmatch(r"proposal_\d+_[0-9a-z]{9}", generate_proposal_id())
    assert generate_message_id(True).endswith("_user")
    assert generate_message_id(False).endswith("_ai")
    assert re.fullmatch(r"persona-\d+-end-user-[0-9a-f]{4}", generate_item_id("persona", "end user"))

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from conftest import make_settings
from staffing.auth import create_access_token, decode_access_token, hash_password, verify_password
from staffing.errors import AuthenticationError
from staffing.service import StaffingService


def test_password_hash_round_trip() -> None:
    hashed = hash_password("hunter22")
    assert hashed != "hunter22"
    assert verify_password("hunter22", hashed)
    assert not verify_password("hunter23", hashed)
    assert not verify_password("hunter22", "not-a-bcrypt-hash")


def test_token_carries_user_id(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    token = create_access_token("user-42", settings)
    assert decode_access_token(token, settings) == "user-42"


def test_token_signed_with_other_secret_is_rejected(tmp_path: Path) -> None:
    token = create_access_token("user-42", make_settings(tmp_path, JWT_SECRET="first-secret-0123456789abcdef012345"))
    with pytest.raises(AuthenticationError):
        decode_access_token(token, make_settings(tmp_path, JWT_SECRET="second-secret-0123456789abcdef01234"))


def test_expired_token_is_rejected(tmp_path: Path) -> None:
    settings = make_settings(tmp_path, JWT_EXPIRES_HOURS=1)
    issued = datetime.now(timezone.utc) - timedelta(hours=2)
    token = create_access_token("user-42", settings, now=issued)
    with pytest.raises(AuthenticationError, match="expired"):
        decode_access_token(token, settings)


def test_garbage_token_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(AuthenticationError):
        decode_access_token("not.a.jwt", make_settings(tmp_path))


def test_service_signs_with_random_key_when_secret_unset(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="staffing.service"):
        first = StaffingService(settings=make_settings(tmp_path, JWT_SECRET=None))
    second = StaffingService(settings=make_settings(tmp_path, JWT_SECRET=None))

    assert first.settings.JWT_SECRET
    assert first.settings.JWT_SECRET != second.settings.JWT_SECRET
    assert "STAFFING_JWT_SECRET is not set" in caplog.text

    token = create_access_token("user-42", first.settings)
    assert decode_access_token(token, first.settings) == "user-42"
    with pytest.raises(AuthenticationError):
        decode_access_token(token, second.settings)

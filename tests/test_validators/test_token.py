"""Tests for EncryptedTokenValidator."""

from __future__ import annotations

import orjson
import pytest

from streetpass.core.errors import TokenError
from streetpass.crypto import KeyRing
from streetpass.validators.token import EncryptedTokenValidator

from helpers import NOW


class TestEncryptedTokenValidator:
    """Tests for EncryptedTokenValidator."""

    def test_valid_token(self, keys: KeyRing, make_token) -> None:
        """A current token yields uid and upload code."""
        validator = EncryptedTokenValidator(keys, clock=lambda: NOW)

        token = validator.validate(make_token(uid="u" * 21, upload_code="XYZ", valid_to=NOW + 10))

        assert token.uid == "u" * 21
        assert token.upload_code == "XYZ"

    def test_expired_token_rejected(self, keys: KeyRing, make_token) -> None:
        """Tokens past validTo fail when the timestamp check is on."""
        validator = EncryptedTokenValidator(keys, clock=lambda: NOW)

        with pytest.raises(TokenError, match="expired"):
            validator.validate(make_token(valid_to=NOW - 1))

    def test_expired_token_accepted_for_replay(self, keys: KeyRing, make_token) -> None:
        """Disabling the timestamp check accepts expired tokens."""
        validator = EncryptedTokenValidator(keys, clock=lambda: NOW)

        token = validator.validate(make_token(valid_to=NOW - 86400), enforce_timestamp_check=False)

        assert token.uid

    @pytest.mark.parametrize("bad", [None, "", "garbage!!", "QUJD"])
    def test_malformed_token(self, keys: KeyRing, bad: str | None) -> None:
        """Missing and undecodable tokens raise TokenError."""
        validator = EncryptedTokenValidator(keys, clock=lambda: NOW)

        with pytest.raises(TokenError):
            validator.validate(bad)

    def test_token_for_other_key(self, keys: KeyRing, make_token) -> None:
        """Tokens sealed with a different key are rejected."""
        validator = EncryptedTokenValidator(KeyRing([bytes(32)]), clock=lambda: NOW)

        with pytest.raises(TokenError, match="invalid"):
            validator.validate(make_token())

    def test_token_without_uid(self, keys: KeyRing, seal_with_key) -> None:
        """Decryptable tokens must still carry a uid."""
        validator = EncryptedTokenValidator(keys, clock=lambda: NOW)

        with pytest.raises(TokenError, match="malformed"):
            validator.validate(seal_with_key(orjson.dumps({"validTo": NOW + 10})))

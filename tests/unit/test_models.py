"""Tests for the value model's resolution logic."""

import base64
from unittest.mock import MagicMock

import pytest

from secenv.core.manifest.exceptions import ValueDecodeError
from secenv.core.manifest.models import (
    Base64Value,
    FileAllocation,
    GcpAllocation,
    GpgAllocation,
    LiteralAllocation,
    LiteralValue,
    PgpSecret,
    PlainContent,
    SecureContent,
)
from secenv.core.secrets.exceptions import (
    InvalidSecretReferenceError,
    SecretBackendError,
    SecretNotFoundError,
)
from tests.helpers import FakeKeyring


class TestEncodedValue:
    """Tests for literal and base64 values."""

    @pytest.mark.parametrize("text", ["", "x", "with spaces\nand lines", "ünïcödé ✓"])
    def test_literal_is_returned_unchanged(self, text):
        """Should return a literal value as-is."""
        assert LiteralValue(text).resolve() == text

    @pytest.mark.parametrize("text", ["", "hello", "ünïcödé ✓", "multi\nline\n"])
    def test_base64_decodes_to_text(self, text):
        """Should decode standard padded base64 into the original text."""
        encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
        assert Base64Value(encoded).resolve() == text

    def test_base64_ignores_folding_whitespace(self):
        """Should accept base64 folded over several lines."""
        assert Base64Value("aGVs\n  bG8=\n").resolve() == "hello"

    def test_invalid_base64(self):
        """Should fail at the base64 stage."""
        with pytest.raises(ValueDecodeError) as exc_info:
            Base64Value("not base64!").resolve()

        assert exc_info.value.stage == "base64"

    def test_missing_padding(self):
        """Should reject unpadded base64."""
        with pytest.raises(ValueDecodeError) as exc_info:
            Base64Value("aGVsbG8").resolve()

        assert exc_info.value.stage == "base64"

    def test_non_utf8_payload(self):
        """Should fail at the utf-8 stage."""
        encoded = base64.b64encode(b"\xff\xfe\xfd").decode("ascii")

        with pytest.raises(ValueDecodeError) as exc_info:
            Base64Value(encoded).resolve()

        assert exc_info.value.stage == "utf-8"


class TestSecretAllocation:
    """Tests for obtaining key material."""

    def test_literal_allocation(self, fake_backends):
        """Should delegate to the encoded value."""
        allocation = LiteralAllocation(Base64Value(base64.b64encode(b"key").decode()))
        assert allocation.resolve(fake_backends) == "key"

    def test_file_allocation(self, tmp_path, fake_backends):
        """Should read the file as UTF-8 text."""
        # Arrange
        key_file = tmp_path / "key.asc"
        key_file.write_text("armored key", encoding="utf-8")

        # Act
        result = FileAllocation(str(key_file)).resolve(fake_backends)

        # Assert
        assert result == "armored key"

    def test_file_allocation_expands_home(self, tmp_path, monkeypatch, fake_backends):
        """Should expand ~ in the path."""
        # Arrange
        monkeypatch.setenv("HOME", str(tmp_path))
        (tmp_path / "key.asc").write_text("home key", encoding="utf-8")

        # Act
        result = FileAllocation("~/key.asc").resolve(fake_backends)

        # Assert
        assert result == "home key"

    def test_missing_file(self, tmp_path, fake_backends):
        """Should name the missing path."""
        path = str(tmp_path / "missing.asc")

        with pytest.raises(SecretNotFoundError, match="missing.asc"):
            FileAllocation(path).resolve(fake_backends)

    def test_non_utf8_file(self, tmp_path, fake_backends):
        """Should surface an unreadable file as a backend error naming the path."""
        # Arrange
        key_file = tmp_path / "key.bin"
        key_file.write_bytes(b"\xff\xfe")

        # Act
        with pytest.raises(SecretBackendError) as exc_info:
            FileAllocation(str(key_file)).resolve(fake_backends)

        # Assert
        assert exc_info.value.backend == "file"
        assert "key.bin" in str(exc_info.value)

    def test_gpg_allocation_exports_key(self, fake_backends):
        """Should export the key from the keyring."""
        # Arrange
        fake_backends.keyring.keys["ABCD"] = "armored"

        # Act
        result = GpgAllocation("ABCD").resolve(fake_backends)

        # Assert
        assert result == "armored"
        assert fake_backends.keyring.exported == ["ABCD"]

    def test_gpg_allocation_empty_export(self, fake_backends):
        """Should treat an empty export as a missing key."""
        fake_backends.keyring.keys["ABCD"] = "  \n"

        with pytest.raises(SecretNotFoundError, match="ABCD"):
            GpgAllocation("ABCD").resolve(fake_backends)

    def test_gcp_allocation_fetches(self, fake_backends):
        """Should pass resource and version to the cloud backend."""
        # Arrange
        fake_backends.cloud.secrets["projects/p/secrets/k#2"] = "key v2"

        # Act
        result = GcpAllocation("projects/p/secrets/k", "2").resolve(fake_backends)

        # Assert
        assert result == "key v2"
        assert fake_backends.cloud.fetched == [("projects/p/secrets/k", "2")]

    @pytest.mark.parametrize(
        "resource",
        [
            "projects/p/secrets",
            "projects/p/secrets/k/versions",
            "project/p/secrets/k",
            "projects//secrets/k",
            "projects/p/keys/k",
            "projects/p/secrets/k/revisions/1",
        ],
    )
    def test_gcp_allocation_rejects_malformed_resource(self, resource):
        """Should reject malformed resource names on construction."""
        with pytest.raises(InvalidSecretReferenceError):
            GcpAllocation(resource)


class TestContent:
    """Tests for Content resolution."""

    def test_plain_content(self, fake_backends):
        """Should resolve the encoded value without touching backends."""
        # Arrange
        engine = MagicMock()

        # Act
        result = PlainContent(LiteralValue("x")).resolve(engine, fake_backends)

        # Assert
        assert result == "x"
        engine.assert_not_called()

    def test_secure_content_uses_engine(self, fake_backends):
        """Should hand key material and ciphertext to the PGP engine."""
        # Arrange
        engine = MagicMock()
        engine.unlock_and_decrypt.return_value = "plaintext"
        content = SecureContent(
            secret=PgpSecret(LiteralAllocation(LiteralValue("KEY"))),
            value=LiteralValue("CIPHERTEXT"),
        )

        # Act
        result = content.resolve(engine, fake_backends)

        # Assert
        assert result == "plaintext"
        engine.unlock_and_decrypt.assert_called_once_with("KEY", "CIPHERTEXT")

    def test_secure_content_decodes_base64_ciphertext(self, fake_backends):
        """Should decode the ciphertext before decrypting it."""
        # Arrange
        engine = MagicMock()
        engine.unlock_and_decrypt.return_value = "plaintext"
        content = SecureContent(
            secret=PgpSecret(LiteralAllocation(LiteralValue("KEY"))),
            value=Base64Value(base64.b64encode(b"ARMORED").decode()),
        )

        # Act
        content.resolve(engine, fake_backends)

        # Assert
        engine.unlock_and_decrypt.assert_called_once_with("KEY", "ARMORED")

    def test_gpg_secret_decrypts_in_keyring(self):
        """Should let the keyring decrypt instead of exporting the key."""
        # Arrange
        keyring = FakeKeyring(plaintexts={"CIPHERTEXT": "from keyring"})
        backends = MagicMock(keyring=keyring)
        engine = MagicMock()
        content = SecureContent(
            secret=PgpSecret(GpgAllocation("ABCD")),
            value=LiteralValue("CIPHERTEXT"),
        )

        # Act
        result = content.resolve(engine, backends)

        # Assert
        assert result == "from keyring"
        assert keyring.exported == []
        engine.unlock_and_decrypt.assert_not_called()

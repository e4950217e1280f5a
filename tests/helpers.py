"""Test helpers: PGP fixture data, a counting prompt, in-memory backends and a throwaway keyring."""

import os
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional

from secenv.core.secrets.base import CloudSecretBackend, KeyringBackend
from secenv.core.secrets.exceptions import SecretNotFoundError

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "pgp"

RSA_PLAIN_FPR = "1605DD8EC2ADB54362D1D5DB7D093FC79A1E7E2D"
RSA_PROTECTED_FPR = "23340AD433C5AF9D27F7F67531DAA80A37A0EA10"
RSA_PROTECTED_PASSWORD = "correct horse"
CV25519_PROTECTED_FPR = "8F5CD0DEF33EBCCC49E0448412416D8ACD197B76"
CV25519_PROTECTED_PASSWORD = "battery staple"
CV25519_PLAIN_FPR = "11BF8F565CB468023D89DFAB77353D40E69C2252"
P256_PLAIN_FPR = "42E2894926323A2985EF34BFB10D1C2C4A80ECFE"


def read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="ascii")


class CountingPrompt:
    """Password prompt that answers from a script and counts its calls."""

    def __init__(self, password: Optional[str] = None):
        self.password = password
        self.calls: List[str] = []

    def __call__(self, prompt_text: str) -> str:
        self.calls.append(prompt_text)
        if self.password is None:
            raise AssertionError(f"Unexpected password prompt: {prompt_text}")
        return self.password


class FakeKeyring(KeyringBackend):
    """Keyring holding armored keys and canned decryptions in memory."""

    name = "fake-keyring"

    def __init__(self, keys: Optional[Dict[str, str]] = None, plaintexts=None):
        self.keys = keys or {}
        self.plaintexts = plaintexts or {}
        self.exported: List[str] = []
        self.decrypted: List[str] = []

    def export_private_key(self, fingerprint: str) -> str:
        self.exported.append(fingerprint)
        if fingerprint not in self.keys:
            raise SecretNotFoundError(f"No private key found for fingerprint: {fingerprint}")
        return self.keys[fingerprint]

    def decrypt(self, ciphertext: str) -> str:
        self.decrypted.append(ciphertext)
        return self.plaintexts[ciphertext]

    def health_check(self) -> bool:
        return True


class FakeCloud(CloudSecretBackend):
    """Cloud secret store backed by a dict keyed by `resource#version`."""

    name = "fake-cloud"

    def __init__(self, secrets: Optional[Dict[str, str]] = None):
        self.secrets = secrets or {}
        self.fetched: List[tuple] = []

    def fetch(self, identifier: str, version: Optional[str] = None) -> str:
        self.fetched.append((identifier, version))
        key = f"{identifier}#{version or 'latest'}"
        if key not in self.secrets:
            raise SecretNotFoundError(f"Secret {key} not found")
        return self.secrets[key]

    def health_check(self) -> bool:
        return True


@contextmanager
def throwaway_gnupg_home(key_fixture: str, parent: Optional[str] = None):
    """GNUPGHOME holding one imported fixture key, removed on exit."""
    # Short path: gpg-agent sockets live inside the home directory
    home = tempfile.mkdtemp(prefix="secenv-gpg-", dir=parent)
    env = dict(os.environ, GNUPGHOME=home)
    try:
        subprocess.run(
            ["gpg", "--batch", "--import"],
            input=read_fixture(key_fixture),
            text=True,
            capture_output=True,
            check=True,
            env=env,
        )
        yield home
    finally:
        if shutil.which("gpgconf"):
            subprocess.run(["gpgconf", "--kill", "gpg-agent"], capture_output=True, env=env)
        shutil.rmtree(home, ignore_errors=True)

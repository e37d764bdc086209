"""Tests for moir.core.secrets."""

import os

import pytest
import yaml

from moir.core.exceptions import SecretNotFoundError
from moir.core.secrets import EnvProvider, SecretsManager, YamlFileProvider


class TestEnvProvider:
    def test_get(self, monkeypatch):
        monkeypatch.setenv("MYAPP_ACCOUNT__EMAIL", "asha@example.com")
        provider = EnvProvider(prefix="MYAPP_")
        assert provider.get("account.email") == "asha@example.com"

    def test_default_prefix(self, monkeypatch):
        monkeypatch.setenv("MOIR_ACCOUNT__PASSWORD", "pw")
        assert EnvProvider().get("account.password") == "pw"

    def test_get_missing(self):
        provider = EnvProvider(prefix="NONEXISTENT_")
        assert provider.get("account.email") is None


class TestYamlFileProvider:
    def test_get(self, tmp_dir):
        path = os.path.join(tmp_dir, "secrets.yaml")
        with open(path, "w") as f:
            yaml.dump({"account": {"email": "asha@example.com", "password": "pw"}}, f)

        provider = YamlFileProvider(path)
        assert provider.get("account.email") == "asha@example.com"
        assert provider.get("account.password") == "pw"

    def test_get_missing_key(self, tmp_dir):
        path = os.path.join(tmp_dir, "secrets.yaml")
        with open(path, "w") as f:
            yaml.dump({"account": {"email": "x"}}, f)
        provider = YamlFileProvider(path)
        assert provider.get("account.password") is None
        assert provider.get("backend.api_key") is None

    def test_missing_file(self, tmp_dir):
        provider = YamlFileProvider(os.path.join(tmp_dir, "absent.yaml"))
        assert provider.get("account.email") is None

    def test_non_string_values_are_stringified(self, tmp_dir):
        path = os.path.join(tmp_dir, "secrets.yaml")
        with open(path, "w") as f:
            yaml.dump({"account": {"password": 123456}}, f)
        assert YamlFileProvider(path).get("account.password") == "123456"

    def test_reload(self, tmp_dir):
        path = os.path.join(tmp_dir, "secrets.yaml")
        with open(path, "w") as f:
            yaml.dump({"account": {"email": "old@example.com"}}, f)
        provider = YamlFileProvider(path)
        assert provider.get("account.email") == "old@example.com"

        with open(path, "w") as f:
            yaml.dump({"account": {"email": "new@example.com"}}, f)
        assert provider.get("account.email") == "old@example.com"
        provider.reload()
        assert provider.get("account.email") == "new@example.com"

    def test_corrupt_file_is_empty(self, tmp_dir):
        path = os.path.join(tmp_dir, "secrets.yaml")
        with open(path, "w") as f:
            f.write("account: [unclosed")
        assert YamlFileProvider(path).get("account.email") is None


class TestSecretsManager:
    def test_chain_order(self, tmp_dir, monkeypatch):
        path = os.path.join(tmp_dir, "secrets.yaml")
        with open(path, "w") as f:
            yaml.dump({"account": {"email": "file@example.com", "password": "file-pw"}}, f)
        monkeypatch.setenv("TEST_ACCOUNT__EMAIL", "env@example.com")

        manager = SecretsManager(providers=[EnvProvider("TEST_"), YamlFileProvider(path)])
        assert manager.get("account.email") == "env@example.com"
        assert manager.get("account.password") == "file-pw"

    def test_default(self):
        manager = SecretsManager(providers=[EnvProvider("NONEXISTENT_")])
        assert manager.get("account.email", "fallback") == "fallback"

    def test_require_raises(self):
        manager = SecretsManager(providers=[EnvProvider("NONEXISTENT_")])
        with pytest.raises(SecretNotFoundError, match="account.email"):
            manager.require("account.email")

    def test_require_found(self, monkeypatch):
        monkeypatch.setenv("TEST_ACCOUNT__EMAIL", "asha@example.com")
        manager = SecretsManager(providers=[EnvProvider("TEST_")])
        assert manager.require("account.email") == "asha@example.com"

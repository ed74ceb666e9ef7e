"""公共测试夹具：隔离 HOME、shell 与进程环境。"""

from __future__ import annotations

import os

import pytest

from globalenv import env_service
from globalenv.config_loader import CONFIG_ENV, RC_FILES_ENV, SHELL_ENV


@pytest.fixture(autouse=True)
def home(tmp_path, monkeypatch):
    """每个测试使用独立的 HOME，并在结束后还原 os.environ。"""
    saved = dict(os.environ)
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("SHELL", "/bin/bash")
    for var in (CONFIG_ENV, SHELL_ENV, RC_FILES_ENV):
        monkeypatch.delenv(var, raising=False)
    env_service.reset_backend()
    yield home_dir
    env_service.reset_backend()
    os.environ.clear()
    os.environ.update(saved)


class FakeKey:
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeWinreg:
    """只实现 Environment 键用到的 winreg 接口。"""

    HKEY_CURRENT_USER = "HKCU"
    KEY_READ = 0x20019
    KEY_SET_VALUE = 0x0002
    REG_SZ = 1
    REG_EXPAND_SZ = 2

    def __init__(self) -> None:
        self.values = {}
        self.key_exists = True
        self.fail = {}

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail:
            raise self.fail[op]

    def CreateKeyEx(self, root, sub_key, reserved=0, access=KEY_SET_VALUE):
        assert (root, sub_key) == (self.HKEY_CURRENT_USER, "Environment")
        self._maybe_fail("create")
        self.key_exists = True
        return FakeKey()

    def OpenKey(self, root, sub_key, reserved=0, access=KEY_READ):
        assert (root, sub_key) == (self.HKEY_CURRENT_USER, "Environment")
        if not self.key_exists:
            raise FileNotFoundError(2, "The system cannot find the file specified")
        self._maybe_fail("open")
        return FakeKey()

    def SetValueEx(self, key, name, reserved, value_type, value):
        self._maybe_fail("set")
        self.values[name] = (value, value_type)

    def DeleteValue(self, key, name):
        self._maybe_fail("delete")
        if name not in self.values:
            raise FileNotFoundError(2, "The system cannot find the file specified")
        del self.values[name]

    def QueryValueEx(self, key, name):
        self._maybe_fail("query")
        if name not in self.values:
            raise FileNotFoundError(2, "The system cannot find the file specified")
        return self.values[name]


@pytest.fixture
def fake_winreg():
    return FakeWinreg()

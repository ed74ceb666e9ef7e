"""Windows 注册表后端测试（使用内存中的 winreg 替身）。"""

from __future__ import annotations

import logging

import pytest

from globalenv.errors import AccessError, ReadError, WriteError
from globalenv.registry import WindowsBackend, broadcast_environment_change


class Notifier:
    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.calls = []

    def __call__(self, timeout_ms: int) -> bool:
        self.calls.append(timeout_ms)
        return self.ok


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def backend(fake_winreg, notifier):
    return WindowsBackend(registry=fake_winreg, notifier=notifier, timeout_ms=1000)


class TestSetVar:
    """写入字符串值并广播。"""

    def test_writes_raw_value(self, backend, fake_winreg, notifier) -> None:
        backend.set_var("ENVTEST", 'TEST VALUE "quoted"')
        assert fake_winreg.values["ENVTEST"] == ('TEST VALUE "quoted"', fake_winreg.REG_SZ)
        assert notifier.calls == [1000]

    def test_percent_uses_expand_sz(self, backend, fake_winreg) -> None:
        backend.set_var("TOOLS", "%USERPROFILE%\\tools")
        assert fake_winreg.values["TOOLS"][1] == fake_winreg.REG_EXPAND_SZ

    def test_overwrite(self, backend, fake_winreg) -> None:
        backend.set_var("ENVTEST", "v1")
        backend.set_var("ENVTEST", "v2")
        assert backend.get_var("ENVTEST") == "v2"
        assert list(fake_winreg.values) == ["ENVTEST"]

    def test_create_key_failure_is_access_error(self, backend, fake_winreg, notifier) -> None:
        fake_winreg.fail["create"] = PermissionError(5, "Access is denied")
        with pytest.raises(AccessError):
            backend.set_var("ENVTEST", "x")
        assert notifier.calls == []

    def test_set_value_failure_is_write_error(self, backend, fake_winreg, notifier) -> None:
        fake_winreg.fail["set"] = OSError(1018, "Illegal operation attempted on a registry key")
        with pytest.raises(WriteError):
            backend.set_var("ENVTEST", "x")
        assert notifier.calls == []

    def test_broadcast_failure_is_not_fatal(self, fake_winreg, caplog) -> None:
        backend = WindowsBackend(registry=fake_winreg, notifier=Notifier(ok=False))
        with caplog.at_level(logging.WARNING, logger="globalenv.registry"):
            backend.set_var("ENVTEST", "x")
        assert fake_winreg.values["ENVTEST"][0] == "x"
        assert "新会话" in caplog.text


class TestUnsetVar:
    """删除值；不存在时不是错误。"""

    def test_round_trip(self, backend, fake_winreg, notifier) -> None:
        fake_winreg.values["OTHER"] = ("keep", fake_winreg.REG_SZ)
        before = dict(fake_winreg.values)
        backend.set_var("ENVTEST", "x")
        backend.unset_var("ENVTEST")
        assert fake_winreg.values == before
        assert len(notifier.calls) == 2

    def test_absent_value_is_noop(self, backend, notifier) -> None:
        backend.unset_var("NEVER_SET")
        assert notifier.calls == []

    def test_absent_key_is_noop(self, backend, fake_winreg) -> None:
        fake_winreg.key_exists = False
        backend.unset_var("ENVTEST")

    def test_open_failure_is_access_error(self, backend, fake_winreg) -> None:
        fake_winreg.fail["open"] = PermissionError(5, "Access is denied")
        with pytest.raises(AccessError):
            backend.unset_var("ENVTEST")

    def test_delete_failure_is_write_error(self, backend, fake_winreg) -> None:
        fake_winreg.values["ENVTEST"] = ("x", fake_winreg.REG_SZ)
        fake_winreg.fail["delete"] = OSError(1018, "Illegal operation attempted on a registry key")
        with pytest.raises(WriteError):
            backend.unset_var("ENVTEST")


class TestGetVar:
    def test_missing_is_none(self, backend) -> None:
        assert backend.get_var("ENVTEST") is None

    def test_query_failure_is_read_error(self, backend, fake_winreg) -> None:
        fake_winreg.fail["query"] = PermissionError(5, "Access is denied")
        with pytest.raises(ReadError):
            backend.get_var("ENVTEST")


def test_describe_target(backend) -> None:
    assert backend.describe_target() == r"HKEY_CURRENT_USER\Environment"


def test_broadcast_without_user32_returns_false(monkeypatch) -> None:
    import ctypes

    monkeypatch.delattr(ctypes, "windll", raising=False)
    assert broadcast_environment_change(10) is False

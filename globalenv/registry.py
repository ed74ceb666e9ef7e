#!/usr/bin/env python3
"""Windows 后端：HKEY_CURRENT_USER\\Environment 读写与变更广播。

注册表中的值原样保存，不需要 shell 转义。写入成功后广播 WM_SETTINGCHANGE，
新启动的进程即可读到新值；已经打开的终端不会被更新。
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .errors import AccessError, ReadError, WriteError, describe

logger = logging.getLogger(__name__)

ENV_SUBKEY = "Environment"
REGISTRY_TARGET = r"HKEY_CURRENT_USER\Environment"

HWND_BROADCAST = 0xFFFF
WM_SETTINGCHANGE = 0x001A
SMTO_ABORTIFHUNG = 0x0002


def broadcast_environment_change(timeout_ms: int = 5000) -> bool:
    """通知所有顶层窗口环境变量已变化，返回是否成功。"""
    try:
        import ctypes
        from ctypes import wintypes

        result = wintypes.DWORD()
        ok = ctypes.windll.user32.SendMessageTimeoutW(
            HWND_BROADCAST,
            WM_SETTINGCHANGE,
            0,
            ENV_SUBKEY,
            SMTO_ABORTIFHUNG,
            timeout_ms,
            ctypes.byref(result),
        )
    except (AttributeError, ImportError, OSError, ValueError) as exc:
        logger.debug("广播环境变量变更失败: %s", exc)
        return False
    return bool(ok)


class WindowsBackend:
    """把环境变量写入当前用户的注册表环境键。"""

    def __init__(
        self,
        registry: Any = None,
        notifier: Optional[Callable[[int], bool]] = None,
        timeout_ms: int = 5000,
    ) -> None:
        if registry is None:
            import winreg as registry
        self.reg = registry
        self.notifier = notifier or broadcast_environment_change
        self.timeout_ms = timeout_ms

    def describe_target(self) -> str:
        return REGISTRY_TARGET

    def set_var(self, name: str, value: str) -> None:
        reg = self.reg
        try:
            key = reg.CreateKeyEx(reg.HKEY_CURRENT_USER, ENV_SUBKEY, 0, reg.KEY_SET_VALUE)
        except OSError as exc:
            raise AccessError(f"无法打开 {REGISTRY_TARGET}: {describe(exc)}", REGISTRY_TARGET) from exc

        # 含 % 的值（如 PATH 片段）需要按 REG_EXPAND_SZ 保存才会被展开
        value_type = reg.REG_EXPAND_SZ if "%" in value else reg.REG_SZ
        with key:
            try:
                reg.SetValueEx(key, name, 0, value_type, value)
            except OSError as exc:
                raise WriteError(f"写入 {name} 失败: {describe(exc)}", REGISTRY_TARGET) from exc
        logger.info("已写入 %s\\%s", REGISTRY_TARGET, name)
        self._notify()

    def unset_var(self, name: str) -> None:
        reg = self.reg
        try:
            key = reg.OpenKey(reg.HKEY_CURRENT_USER, ENV_SUBKEY, 0, reg.KEY_SET_VALUE)
        except FileNotFoundError:
            logger.debug("%s 不存在，跳过", REGISTRY_TARGET)
            return
        except OSError as exc:
            raise AccessError(f"无法打开 {REGISTRY_TARGET}: {describe(exc)}", REGISTRY_TARGET) from exc

        with key:
            try:
                reg.DeleteValue(key, name)
            except FileNotFoundError:
                logger.debug("%s 未设置，跳过", name)
                return
            except OSError as exc:
                raise WriteError(f"删除 {name} 失败: {describe(exc)}", REGISTRY_TARGET) from exc
        logger.info("已删除 %s\\%s", REGISTRY_TARGET, name)
        self._notify()

    def get_var(self, name: str) -> Optional[str]:
        reg = self.reg
        try:
            with reg.OpenKey(reg.HKEY_CURRENT_USER, ENV_SUBKEY, 0, reg.KEY_READ) as key:
                value, _ = reg.QueryValueEx(key, name)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise ReadError(f"读取 {name} 失败: {describe(exc)}", REGISTRY_TARGET) from exc
        return str(value)

    def _notify(self) -> None:
        # 注册表已写入成功，广播失败不影响结果
        if not self.notifier(self.timeout_ms):
            logger.warning("未能通知其他进程，%s 仅在新会话中可见", REGISTRY_TARGET)

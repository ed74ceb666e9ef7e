#!/usr/bin/env python3
"""环境变量持久化入口：选择平台后端并同步当前进程环境。"""

from __future__ import annotations

import logging
import os
import re
import sys
from typing import Any, Dict, Optional, Union

from .config_loader import load_settings, resolve_rc_files
from .errors import UnsupportedPlatformError
from .registry import WindowsBackend
from .shell_rc import UnixBackend

logger = logging.getLogger(__name__)

Backend = Union[WindowsBackend, UnixBackend]

_POSIX_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# 进程内只选择一次后端
_backend: Optional[Backend] = None
_settings: Optional[Dict[str, Any]] = None


def select_backend(settings: Optional[Dict[str, Any]] = None) -> Backend:
    """按当前平台构造后端，不做缓存。"""
    settings = settings if settings is not None else load_settings()
    if sys.platform == "win32":
        return WindowsBackend(timeout_ms=settings["notify_timeout_ms"])
    if os.name == "posix":
        return UnixBackend(resolve_rc_files(settings))
    raise UnsupportedPlatformError(f"不支持的平台: {sys.platform}")


def configure(settings: Optional[Dict[str, Any]] = None, backend: Optional[Backend] = None) -> Backend:
    """显式指定配置或后端，替换已缓存的选择。"""
    global _backend, _settings
    _settings = settings if settings is not None else load_settings()
    _backend = backend if backend is not None else select_backend(_settings)
    return _backend


def get_backend() -> Backend:
    if _backend is None:
        return configure()
    return _backend


def reset_backend() -> None:
    global _backend, _settings
    _backend = None
    _settings = None


def validate_name(name: str, backend: Backend) -> None:
    if isinstance(backend, WindowsBackend):
        if not name or "=" in name or "\x00" in name:
            raise ValueError(f"无效的环境变量名: {name!r}")
    elif not _POSIX_NAME.match(name):
        raise ValueError(f"无效的环境变量名: {name!r}")


def _sync_process_env() -> bool:
    return bool((_settings or {}).get("update_process_env", True))


def set_var(name: str, value: str) -> None:
    """持久化 name=value：不存在则新增，已存在则更新。"""
    backend = get_backend()
    validate_name(name, backend)
    backend.set_var(name, value)
    if _sync_process_env():
        os.environ[name] = value
    logger.debug("set %s -> %s", name, backend.describe_target())


def unset_var(name: str) -> None:
    """删除持久化条目；不存在时什么也不做。"""
    backend = get_backend()
    validate_name(name, backend)
    backend.unset_var(name)
    if _sync_process_env():
        os.environ.pop(name, None)
    logger.debug("unset %s -> %s", name, backend.describe_target())


def get_var(name: str) -> Optional[str]:
    """读取持久化的值（不是当前进程环境中的值），未设置时返回 None。"""
    backend = get_backend()
    validate_name(name, backend)
    return backend.get_var(name)

#!/usr/bin/env python3
"""配置读取与 shell 配置文件选择模块。

- 配置文件为 TOML，默认位于 ~/.config/globalenv/config.toml
- 可通过 GLOBALENV_CONFIG / GLOBALENV_SHELL / GLOBALENV_RC_FILES 覆盖
- 根据登录 shell 决定需要维护的 rc 文件（无法识别时报错，不做猜测）
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

from .errors import ConfigLoadError, UnsupportedShellError

CONFIG_ENV = "GLOBALENV_CONFIG"
SHELL_ENV = "GLOBALENV_SHELL"
RC_FILES_ENV = "GLOBALENV_RC_FILES"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "shell": None,
    "rc_files": [],
    "update_process_env": True,
    "notify_timeout_ms": 5000,
}

SHELL_RC_MAP = {
    "bash": {
        "rc_files": [".bashrc"],
        # macOS 终端默认启动 login shell，只读取 .bash_profile
        "darwin": [".bash_profile"],
    },
    "zsh": {
        "rc_files": [".zshrc"],
    },
}

_TYPES = {
    "shell": (str, type(None)),
    "rc_files": (list,),
    "update_process_env": (bool,),
    "notify_timeout_ms": (int,),
}


def default_config_path() -> Path:
    custom = os.environ.get(CONFIG_ENV)
    if custom:
        return Path(custom).expanduser()
    return Path.home() / ".config" / "globalenv" / "config.toml"


def load_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    """读取配置文件并合并默认值与环境变量覆盖项。"""
    cfg_path = Path(path) if path is not None else default_config_path()
    settings = dict(DEFAULT_SETTINGS, rc_files=list(DEFAULT_SETTINGS["rc_files"]))

    if cfg_path.exists():
        try:
            data = toml.load(cfg_path)
        except (toml.TomlDecodeError, OSError) as exc:
            raise ConfigLoadError(f"读取配置失败: {exc}", cfg_path) from exc
        unknown = sorted(set(data) - set(DEFAULT_SETTINGS))
        if unknown:
            raise ConfigLoadError(f"未知的配置项: {', '.join(unknown)}", cfg_path)
        settings.update(data)

    if os.environ.get(SHELL_ENV):
        settings["shell"] = os.environ[SHELL_ENV]
    if os.environ.get(RC_FILES_ENV):
        settings["rc_files"] = [p for p in os.environ[RC_FILES_ENV].split(os.pathsep) if p]

    for key, types in _TYPES.items():
        value = settings[key]
        # bool 是 int 的子类，需要单独排除
        if not isinstance(value, types) or (key == "notify_timeout_ms" and isinstance(value, bool)):
            raise ConfigLoadError(f"配置项 {key} 类型不正确: {value!r}", cfg_path)
    if not all(isinstance(p, str) and p for p in settings["rc_files"]):
        raise ConfigLoadError(f"rc_files 必须是非空字符串列表: {settings['rc_files']!r}", cfg_path)
    return settings


def login_shell() -> str:
    """返回当前用户的登录 shell 路径，找不到时返回空字符串。"""
    shell = os.environ.get("SHELL", "")
    if shell:
        return shell
    try:
        import pwd
    except ImportError:
        return ""
    try:
        return pwd.getpwuid(os.getuid()).pw_shell or ""
    except KeyError:
        return ""


def detect_shell(settings: Dict[str, Any]) -> str:
    """返回受支持的 shell 名称（bash / zsh）。"""
    shell = settings.get("shell") or login_shell()
    name = Path(shell).name if shell else ""
    if name not in SHELL_RC_MAP:
        supported = ", ".join(sorted(SHELL_RC_MAP))
        raise UnsupportedShellError(f"无法识别的 shell: {shell or '<未设置>'} (支持: {supported})")
    return name


def resolve_rc_files(settings: Dict[str, Any], home: Optional[Path] = None) -> List[Path]:
    """返回需要维护的 rc 文件列表。

    显式配置的 rc_files 完全取代按 shell 推导的列表；其他 shell 的文件不会被修改。
    """
    home = Path(home) if home is not None else Path.home()
    if settings.get("rc_files"):
        names = settings["rc_files"]
    else:
        entry = SHELL_RC_MAP[detect_shell(settings)]
        names = entry.get(sys.platform, entry["rc_files"])

    files: List[Path] = []
    for name in names:
        path = Path(name).expanduser()
        if not path.is_absolute():
            path = home / path
        if path not in files:
            files.append(path)
    return files

#!/usr/bin/env python3
"""统一的错误类型。

两个后端（注册表 / shell 配置文件）都只通过这里的异常向调用方报告失败，
底层的 OSError 通过 ``raise ... from exc`` 链接保留。
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union

Target = Union[Path, str, None]


class GlobalEnvError(RuntimeError):
    """所有 globalenv 错误的基类。"""

    def __init__(self, message: str, target: Target = None) -> None:
        super().__init__(message)
        self.target = target


class UnsupportedPlatformError(GlobalEnvError):
    """当前操作系统没有可用的持久化方式。"""


class UnsupportedShellError(GlobalEnvError):
    """无法识别用户的登录 shell，或不在支持列表中。"""


class AccessError(GlobalEnvError):
    """没有权限打开注册表键或读写目标文件。"""


class WriteError(GlobalEnvError):
    """资源已打开，但写入（注册表写值 / 原子替换文件）失败。"""


class ReadError(GlobalEnvError):
    """修改前读取现有内容失败。"""


class ConfigLoadError(GlobalEnvError):
    """用于统一抛出配置加载相关错误。"""


class PartialApplyError(GlobalEnvError):
    """多个配置文件中部分写入失败。

    已成功的文件不会回滚；操作是幂等的，可以直接重试。
    """

    def __init__(self, errors: Dict[Path, GlobalEnvError], applied: List[Path]) -> None:
        failed = ", ".join(f"{p}: {e}" for p, e in errors.items())
        super().__init__(f"部分配置文件写入失败 ({failed})")
        self.errors = errors
        self.applied = applied


def describe(exc: OSError) -> str:
    return exc.strerror or str(exc)


__all__ = [
    "AccessError",
    "ConfigLoadError",
    "GlobalEnvError",
    "PartialApplyError",
    "ReadError",
    "UnsupportedPlatformError",
    "UnsupportedShellError",
    "WriteError",
    "describe",
]


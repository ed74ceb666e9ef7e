#!/usr/bin/env python3
"""shell 配置文件中 export 行的定位、修改与持久化（Unix）。

每次调用都是完整的 读取 -> 修改 -> 写回，不保留任何文件句柄。
不做跨进程加锁：两个进程同时修改同一个 rc 文件时，后写入者覆盖先写入者。
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .errors import AccessError, GlobalEnvError, PartialApplyError, ReadError, WriteError, describe
from .quoting import quote_value, unquote_value

logger = logging.getLogger(__name__)


def export_pattern(name: str) -> "re.Pattern[str]":
    return re.compile(rf"^\s*export\s+{re.escape(name)}=")


def build_export_line(name: str, value: str) -> str:
    return f"export {name}={quote_value(value)}"


def find_export_lines(lines: Iterable[str], name: str) -> List[int]:
    """返回所有匹配 ``export NAME=`` 的行号，第一个即为有效条目。"""
    pattern = export_pattern(name)
    return [i for i, line in enumerate(lines) if pattern.match(line)]


def split_lines(text: str) -> List[str]:
    """只按 \\n 切分并保留行尾（\\r\\n 原样保留）。

    str.splitlines 还会在 \\x0c、\\u2028 等字符处切分，而 shell 不会。
    """
    return [line for line in re.split(r"(?<=\n)", text) if line]


def _line_ending(line: str) -> str:
    stripped = line.rstrip("\r\n")
    return line[len(stripped):]


def apply_set(text: str, name: str, value: str) -> str:
    """替换已有条目或在末尾追加新条目，返回新文本。"""
    new_line = build_export_line(name, value)
    lines = split_lines(text)
    found = find_export_lines(lines, name)

    if not found:
        if text and not text.endswith("\n"):
            text += "\n"
        return text + new_line + "\n"

    first, duplicates = found[0], found[1:]
    lines[first] = new_line + (_line_ending(lines[first]) or "\n")
    if duplicates:
        # 后面的重复行会覆盖前面的值，必须一并删除
        logger.warning("%s 存在 %d 条重复 export 行，已保留第一条", name, len(duplicates))
        for idx in reversed(duplicates):
            del lines[idx]
    return "".join(lines)


def apply_unset(text: str, name: str) -> str:
    """删除所有匹配的 export 行（不留空行）。"""
    lines = split_lines(text)
    found = set(find_export_lines(lines, name))
    if not found:
        return text
    return "".join(line for i, line in enumerate(lines) if i not in found)


def read_rc(path: Path) -> str:
    """读取 rc 文件全文，不存在时返回空字符串。"""
    try:
        with path.open("r", encoding="utf-8", newline="") as f:
            return f.read()
    except FileNotFoundError:
        return ""
    except PermissionError as exc:
        raise AccessError(f"无权读取 {path}: {describe(exc)}", path) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ReadError(f"读取 {path} 失败: {exc}", path) from exc


def _copy_ownership(src: os.stat_result, fd: int, path: Path) -> None:
    os.fchmod(fd, src.st_mode & 0o7777)
    own = os.fstat(fd)
    if (own.st_uid, own.st_gid) != (src.st_uid, src.st_gid):
        try:
            os.fchown(fd, src.st_uid, src.st_gid)
        except PermissionError as exc:
            raise AccessError(f"无法保留 {path} 的属主: {describe(exc)}", path) from exc


def atomic_write(path: Path, text: str) -> None:
    """先写同目录临时文件，再 rename 覆盖原文件。

    中途失败时原文件保持不变，临时文件会被清理。权限与属主沿用原文件。
    """
    path = Path(os.path.realpath(path))
    try:
        original: Optional[os.stat_result] = path.stat()
    except FileNotFoundError:
        original = None
    except PermissionError as exc:
        raise AccessError(f"无权访问 {path}: {describe(exc)}", path) from exc
    except OSError as exc:
        raise ReadError(f"读取 {path} 属性失败: {describe(exc)}", path) from exc

    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except PermissionError as exc:
        raise AccessError(f"无权写入 {path.parent}: {describe(exc)}", path) from exc
    except OSError as exc:
        raise WriteError(f"无法创建临时文件: {describe(exc)}", path) from exc

    tmp = Path(tmp_name)
    try:
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(text)
                f.flush()
                if original is not None:
                    _copy_ownership(original, f.fileno(), path)
                else:
                    os.fchmod(f.fileno(), 0o644 & ~_umask())
                os.fsync(f.fileno())
        except OSError as exc:
            raise WriteError(f"写入临时文件失败: {describe(exc)}", path) from exc
        try:
            os.replace(tmp, path)
        except OSError as exc:
            raise WriteError(f"替换 {path} 失败: {describe(exc)}", path) from exc
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    logger.debug("已写入 %s", path)


def _exists(path: Path) -> bool:
    try:
        return path.exists()
    except PermissionError as exc:
        raise AccessError(f"无权访问 {path}: {describe(exc)}", path) from exc


def _umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


class UnixBackend:
    """把环境变量以 export 行的形式维护在一个或多个 rc 文件中。"""

    def __init__(self, rc_files: List[Path]) -> None:
        if not rc_files:
            raise ValueError("至少需要一个 rc 文件")
        self.rc_files = [Path(p) for p in rc_files]

    def describe_target(self) -> str:
        return ", ".join(str(p) for p in self.rc_files)

    def set_var(self, name: str, value: str) -> List[Path]:
        quote_value(value)  # 先校验取值，避免写到一半才失败
        return self._apply_all(lambda text: apply_set(text, name, value), create=True)

    def unset_var(self, name: str) -> List[Path]:
        return self._apply_all(lambda text: apply_unset(text, name), create=False)

    def get_var(self, name: str) -> Optional[str]:
        for path in self.rc_files:
            lines = split_lines(read_rc(path))
            found = find_export_lines(lines, name)
            if found:
                _, _, raw = lines[found[0]].partition("=")
                return unquote_value(raw)
        return None

    def _apply_all(self, mutate: Callable[[str], str], create: bool) -> List[Path]:
        """对每个文件独立执行修改，返回实际改写的文件列表。"""
        changed: List[Path] = []
        applied: List[Path] = []
        errors: Dict[Path, GlobalEnvError] = {}
        for path in self.rc_files:
            try:
                if self._apply_one(path, mutate, create):
                    changed.append(path)
                applied.append(path)
            except GlobalEnvError as exc:
                errors[path] = exc

        if errors:
            if len(self.rc_files) == 1:
                raise next(iter(errors.values()))
            raise PartialApplyError(errors, applied)
        return changed

    @staticmethod
    def _apply_one(path: Path, mutate: Callable[[str], str], create: bool) -> bool:
        if not _exists(path):
            if not create:
                logger.debug("%s 不存在，跳过", path)
                return False
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError as exc:
                raise AccessError(f"无权创建目录 {path.parent}: {describe(exc)}", path) from exc
            except OSError as exc:
                raise WriteError(f"无法创建目录 {path.parent}: {describe(exc)}", path) from exc
        text = read_rc(path)
        new_text = mutate(text)
        if new_text == text:
            return False
        atomic_write(path, new_text)
        logger.info("已更新 %s", path)
        return True

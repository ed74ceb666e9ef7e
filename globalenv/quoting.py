#!/usr/bin/env python3
"""export 行右侧取值的转义与还原。"""

from __future__ import annotations

import re

# 简单 token 不加引号，便于阅读
_SIMPLE_TOKEN = re.compile(r"^[A-Za-z0-9_\-./]+$")
# 双引号内仍会被 shell 解释的字符
_DQUOTE_SPECIAL = re.compile(r'([\\"$`])')
_DQUOTE_ESCAPED = re.compile(r'\\([\\"$`])')
# 取值之后的内容（如行尾注释）忽略
_DQUOTED = re.compile(r'"((?:[^"\\]|\\.)*)"', re.S)
_SQUOTED = re.compile(r"'([^']*)'", re.S)
_FORBIDDEN = ("\n", "\r", "\x00")


def quote_value(value: str) -> str:
    """返回可直接放在 ``export NAME=`` 之后的取值文本。

    shell 重新解析时得到的值与 ``value`` 完全一致（不会被分词或展开）。
    """
    if any(ch in value for ch in _FORBIDDEN):
        raise ValueError(f"取值不能包含换行或 NUL 字符: {value!r}")
    if _SIMPLE_TOKEN.match(value):
        return value
    return '"' + _DQUOTE_SPECIAL.sub(r"\\\1", value) + '"'


def unquote_value(text: str) -> str:
    """还原 quote_value 的结果，也兼容手写的单引号 / 裸值及行尾注释。"""
    text = text.strip()
    match = _DQUOTED.match(text)
    if match:
        return _DQUOTE_ESCAPED.sub(r"\1", match.group(1))
    match = _SQUOTED.match(text)
    if match:
        return match.group(1)
    # 裸值在第一个空白处结束
    return text.split(None, 1)[0] if text else ""

#!/usr/bin/env python3
"""全局环境变量命令行工具。

- set NAME VALUE : 写入注册表 / shell 配置文件
- unset NAME     : 删除已持久化的变量
- get NAME       : 查看已持久化的值
- files          : 查看将要修改的配置文件（或注册表键）
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from globalenv import env_service
from globalenv.config_loader import load_settings
from globalenv.errors import GlobalEnvError, PartialApplyError
from globalenv.shell_rc import UnixBackend


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="globalenv", description="全局设置 / 删除环境变量")
    parser.add_argument("--config", type=Path, help="配置文件路径 (默认 ~/.config/globalenv/config.toml)")
    parser.add_argument(
        "--rc-file",
        action="append",
        dest="rc_files",
        metavar="PATH",
        help="指定要维护的 shell 配置文件，可重复 (仅 Unix)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="输出详细日志")

    sub = parser.add_subparsers(dest="command", required=True)
    p_set = sub.add_parser("set", help="设置变量")
    p_set.add_argument("name")
    p_set.add_argument("value")
    p_unset = sub.add_parser("unset", help="删除变量")
    p_unset.add_argument("name")
    p_get = sub.add_parser("get", help="查看已持久化的值")
    p_get.add_argument("name")
    sub.add_parser("files", help="查看目标文件 / 注册表键")
    return parser.parse_args(argv)


def print_source_hint(backend) -> None:
    if isinstance(backend, UnixBackend):
        for path in backend.rc_files:
            print(f"请执行: source {path}")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        settings = load_settings(args.config)
        if args.rc_files:
            settings["rc_files"] = args.rc_files
        backend = env_service.configure(settings)

        if args.command == "files":
            print(f"目标: {backend.describe_target()}")
        elif args.command == "get":
            value = env_service.get_var(args.name)
            if value is None:
                print(f"[Info] {args.name} 未设置", file=sys.stderr)
                return 1
            print(value)
        elif args.command == "set":
            env_service.set_var(args.name, args.value)
            print("已写入配置:")
            print(f"  {args.name}={args.value}")
            print(f"目标: {backend.describe_target()}")
            print_source_hint(backend)
        else:
            env_service.unset_var(args.name)
            print(f"已移除: {args.name}")
            print(f"目标: {backend.describe_target()}")
            print_source_hint(backend)
    except PartialApplyError as exc:
        print(f"[Error] {exc}", file=sys.stderr)
        for path in exc.applied:
            print(f"  已应用: {path}", file=sys.stderr)
        print("  操作可安全重试", file=sys.stderr)
        return 1
    except (GlobalEnvError, ValueError) as exc:
        print(f"[Error] {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

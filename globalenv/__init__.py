"""全局设置 / 删除环境变量（不仅限于当前进程）。

示例::

    from globalenv import set_var, unset_var
    set_var("ENVTEST", "TESTVALUE")
    unset_var("ENVTEST")
"""

from .env_service import configure, get_backend, get_var, reset_backend, set_var, unset_var
from .errors import (
    AccessError,
    ConfigLoadError,
    GlobalEnvError,
    PartialApplyError,
    ReadError,
    UnsupportedPlatformError,
    UnsupportedShellError,
    WriteError,
)

__version__ = "0.3.0"

__all__ = [
    "AccessError",
    "ConfigLoadError",
    "GlobalEnvError",
    "PartialApplyError",
    "ReadError",
    "UnsupportedPlatformError",
    "UnsupportedShellError",
    "WriteError",
    "configure",
    "get_backend",
    "get_var",
    "reset_backend",
    "set_var",
    "unset_var",
]

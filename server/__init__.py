"""FastAPI application exposing teleop status and the vision feed."""

from importlib import import_module
from types import ModuleType
from typing import Any

__all__ = ["app", "create_app"]


def __getattr__(name: str) -> Any:
    if name in {"app", "create_app"}:
        module: ModuleType = import_module("server.app")
        return getattr(module, name)
    raise AttributeError(name)

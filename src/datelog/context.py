from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict

log_properties: ContextVar[Dict[str, str]] = ContextVar("log_properties", default={})


def get_log_properties() -> Dict[str, str]:
    """Get properties bound to the current context"""
    return log_properties.get({})


def set_log_properties(properties: Dict[str, str]) -> None:
    """Bind properties to the current context"""
    log_properties.set(dict(properties or {}))


def update_log_properties(**properties: str) -> None:
    """Add properties to the current context"""
    current = dict(get_log_properties())
    current.update(properties)
    set_log_properties(current)


@contextmanager
def property_context(**properties: str) -> Generator[Dict[str, str], None, None]:
    """Bind extra properties for the duration of a block, e.g. ``APP="ids"``"""
    previous = get_log_properties()
    merged = {**previous, **properties}

    try:
        set_log_properties(merged)
        yield merged
    finally:
        set_log_properties(previous)

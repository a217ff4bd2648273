"""Base classes for configuration and runtime state models.

Configuration sections and runtime sections share one behaviour:
they own resources (the logger's file sink, mostly) that must be
released when a run ends, even when it ends with an exception. Both
derive from BaseCloseable, which closes its children in field order.

Kept apart from config.py so that log.py can import it without a
cycle.
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    """Anything with a close() method."""

    def close(self) -> None:
        ...


class BaseCloseable(BaseModel):
    """Pydantic model that closes its Closeable fields on close().

    A failing child does not stop the cascade; the error is printed
    to stderr and the remaining children are still closed:
    State -> Config -> Logger -> Sink.
    """

    def close(self):
        for field_name in self.__class__.model_fields:
            child = getattr(self, field_name, None)
            if child is None or not isinstance(child, Closeable):
                continue
            try:
                child.close()
            except Exception as e:
                print(
                    f"Warning: Error closing {field_name}: {e}",
                    file=sys.stderr,
                )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Marker base for sections loaded from YAML, env or CLI."""


class BaseState(BaseCloseable):
    """Marker base for sections mutated while a run executes."""


__all__ = ["Closeable", "BaseCloseable", "BaseConfig", "BaseState"]

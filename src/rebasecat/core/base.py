"""Base classes shared by configuration and runtime state models.

Kept separate from config.py and log.py so that both can import
them without a circular dependency:
- Closeable Protocol for anything holding an OS resource
- BaseCloseable, which closes its Closeable fields on exit
- BaseConfig and BaseState, semantic markers for the two kinds
  of models
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    """Protocol for objects that support close()."""

    def close(self) -> None:
        """Release resources."""
        ...


class BaseCloseable(BaseModel):
    """Pydantic model that closes its Closeable children.

    Subclasses become context managers. On exit every field that
    implements Closeable is closed, so a single ``with`` around the
    root model cascades down to log sinks and open files:

        State -> Config -> Logger -> FileSink
    """

    def close(self):
        """Close every Closeable field.

        A failing child does not stop the rest from closing; the
        failure goes to stderr because the logger may already be
        gone at this point.
        """
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
    """Configuration section loaded from YAML, env or CLI."""


class BaseState(BaseCloseable):
    """Runtime section mutated while a workflow runs."""


__all__ = ["Closeable", "BaseCloseable", "BaseConfig", "BaseState"]

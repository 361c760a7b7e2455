"""
Item and Format Definitions

A Format is any object that can name itself and export its wire mapping.
An Item wraps exactly one Format, plus optional id / prev-id fields used by
the gateway to detect gaps in a channel's message sequence.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Format(Protocol):
    """Serialization strategy producing the wire mapping for one item."""

    def name(self) -> str:
        """Key under which this format's export is placed in the item."""
        ...

    def export(self) -> dict[str, Any]:
        """
        Return the wire mapping for this format.

        Must be callable any number of times without side effects.
        """
        ...


class FormatBase(ABC):
    """Optional base class for concrete formats."""

    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def export(self) -> dict[str, Any]: ...


@dataclass(frozen=True)
class Item:
    """One message to publish."""

    format: Format
    id: str | None = None
    prev_id: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.format, Format):
            raise TypeError(
                f"Item format must provide name() and export(), got {type(self.format).__name__}"
            )

    def export(self) -> dict[str, Any]:
        """Build a fresh wire mapping for this item (channel not included)."""
        out: dict[str, Any] = {}
        if self.id is not None:
            out["id"] = self.id
        if self.prev_id is not None:
            out["prev-id"] = self.prev_id
        out[self.format.name()] = self.format.export()
        return out

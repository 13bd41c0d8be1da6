"""Pluggable sinks for processed uploads."""

from __future__ import annotations

from typing import Any

from streetpass.forwarders.base import DataForwarder
from streetpass.forwarders.contacts import ContactStoreForwarder
from streetpass.forwarders.jsonl import JSONLinesForwarder

FORWARDERS: dict[str, type[DataForwarder]] = {
    ContactStoreForwarder.name: ContactStoreForwarder,
    JSONLinesForwarder.name: JSONLinesForwarder,
}


def create_forwarder(name: str, **kwargs: Any) -> DataForwarder:
    """Instantiate a registered forwarder by name.

    Raises:
        ValueError: If no forwarder is registered under ``name``
    """
    try:
        forwarder_cls = FORWARDERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown forwarder {name!r}, expected one of {sorted(FORWARDERS)}"
        ) from None
    return forwarder_cls(**kwargs)


__all__ = [
    "DataForwarder",
    "ContactStoreForwarder",
    "JSONLinesForwarder",
    "FORWARDERS",
    "create_forwarder",
]

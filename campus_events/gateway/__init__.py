from __future__ import annotations

from campus_events.gateway.base import DataGateway
from campus_events.gateway.changefeed import (
    ChangeEvent,
    ChangeFeed,
    ChangeFilter,
    ChangeKind,
    InMemoryChangeFeed,
    Subscription,
)


def create_gateway(*args, **kwargs):
    from campus_events.gateway.factory import create_gateway as _create_gateway

    return _create_gateway(*args, **kwargs)


__all__ = [
    "DataGateway",
    "ChangeEvent",
    "ChangeFeed",
    "ChangeFilter",
    "ChangeKind",
    "InMemoryChangeFeed",
    "Subscription",
    "create_gateway",
]

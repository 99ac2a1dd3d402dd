"""Custom-id routing table for whitelist components and modals.

Every interactive control the bot posts carries a custom id from this table,
so handlers can be resolved after a restart without any in-memory views.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

PREFIX = "wl"
SEPARATOR = ":"


class Route(str, Enum):
    START = "start"
    RESUME = "resume"
    DECISION = "decision"
    NOTE = "note"


@dataclass(frozen=True)
class RouteSpec:
    route: Route
    kind: Literal["button", "modal"]
    arity: int


@dataclass(frozen=True)
class RouteMatch:
    route: Route
    kind: Literal["button", "modal"]
    args: Tuple[str, ...]


ROUTES: Dict[str, RouteSpec] = {
    f"{PREFIX}:start": RouteSpec(Route.START, "button", 0),
    f"{PREFIX}:resume": RouteSpec(Route.RESUME, "button", 0),
    f"{PREFIX}:decision": RouteSpec(Route.DECISION, "button", 2),  # <action>:<application id>
    f"{PREFIX}:note": RouteSpec(Route.NOTE, "modal", 2),  # <action>:<application id>
}

NOTE_INPUT_ID = "note"


def build_custom_id(route: Route, *args: str) -> str:
    key = f"{PREFIX}{SEPARATOR}{Route(route).value}"
    spec = ROUTES[key]
    if len(args) != spec.arity:
        raise ValueError(f"{key} expects {spec.arity} arguments, got {len(args)}")
    if any(not arg or SEPARATOR in arg for arg in args):
        raise ValueError(f"Invalid custom id arguments: {args!r}")
    return SEPARATOR.join((key, *args))


def parse_custom_id(custom_id: Optional[str]) -> Optional[RouteMatch]:
    """Resolve a custom id to its route, or ``None`` when it is not ours."""

    if not custom_id:
        return None
    parts = custom_id.split(SEPARATOR)
    if len(parts) < 2:
        return None
    spec = ROUTES.get(SEPARATOR.join(parts[:2]))
    if spec is None:
        return None
    args = tuple(parts[2:])
    if len(args) != spec.arity or any(not arg for arg in args):
        return None
    return RouteMatch(route=spec.route, kind=spec.kind, args=args)


def modal_value(data: Optional[Mapping[str, Any]], custom_id: str = NOTE_INPUT_ID) -> Optional[str]:
    """Pull a text input value out of a raw modal-submit payload."""

    for row in (data or {}).get("components", []) or []:
        for component in row.get("components", []) or []:
            if component.get("custom_id") == custom_id:
                return component.get("value")
    return None


__all__ = [
    "NOTE_INPUT_ID",
    "ROUTES",
    "Route",
    "RouteMatch",
    "RouteSpec",
    "build_custom_id",
    "modal_value",
    "parse_custom_id",
]

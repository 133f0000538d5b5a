"""Resolution of the config and script bundles an Egg inherits from another Egg.

An Egg either declares its own bundle or points at a parent Egg through
``config_from`` / ``copy_script_from``. The effective values are computed on
demand and never written back onto the Egg itself.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Union

if TYPE_CHECKING:
    from .models import Egg

EggLookup = Callable[[int], "Egg"]


@dataclass(frozen=True)
class Own:
    pass


@dataclass(frozen=True)
class InheritsFrom:
    parent_id: int


BundleSource = Union[Own, InheritsFrom]


def bundle_source(parent_id: Optional[int]) -> BundleSource:
    if parent_id is None:
        return Own()
    return InheritsFrom(parent_id)


@dataclass(frozen=True)
class EffectiveConfig:
    files: Optional[str]
    startup: Optional[str]
    logs: Optional[str]
    stop: Optional[str]


@dataclass(frozen=True)
class EffectiveScript:
    privileged: bool
    install: Optional[str]
    entry: Optional[str]
    container: Optional[str]


def _pick(own, parent: Egg, attr: str):
    if own is not None:
        return own
    return getattr(parent, attr)


def resolve_effective_config(egg: Egg, lookup: EggLookup) -> Optional[EffectiveConfig]:
    """Return the config bundle in effect for ``egg``, or None if it declares its own.

    Fields the Egg sets itself take precedence over the parent's.
    """
    source = egg.config_source
    if isinstance(source, Own):
        return None
    parent = lookup(source.parent_id)
    return EffectiveConfig(
        files=_pick(egg.config_files, parent, "config_files"),
        startup=_pick(egg.config_startup, parent, "config_startup"),
        logs=_pick(egg.config_logs, parent, "config_logs"),
        stop=_pick(egg.config_stop, parent, "config_stop"),
    )


def resolve_effective_script(egg: Egg, lookup: EggLookup) -> Optional[EffectiveScript]:
    """Return the install script bundle in effect for ``egg``, or None if it declares its own.

    The privileged flag is never inherited.
    """
    source = egg.script_source
    if isinstance(source, Own):
        return None
    parent = lookup(source.parent_id)
    return EffectiveScript(
        privileged=egg.script_is_privileged,
        install=_pick(egg.script_install, parent, "script_install"),
        entry=_pick(egg.script_entry, parent, "script_entry"),
        container=_pick(egg.script_container, parent, "script_container"),
    )

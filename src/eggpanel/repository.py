from __future__ import annotations

import json
import threading
from dataclasses import fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .models import Egg, EggVariable, Nest, Server


class RecordNotFoundError(LookupError):
    """The requested entity does not exist."""


_JSON_TEXT_FIELDS = {"config_files", "config_startup", "config_logs"}


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _build(cls, raw: dict[str, Any]):
    known = {f.name for f in fields(cls)}
    data = {key: value for key, value in raw.items() if key in known}
    for key in ("created_at", "updated_at"):
        if key in data:
            data[key] = _as_datetime(data[key])
    for key in _JSON_TEXT_FIELDS & data.keys():
        if data[key] is not None and not isinstance(data[key], str):
            data[key] = json.dumps(data[key])
    return cls(**data)


class PanelRepository:
    """In-memory store for nests, eggs, their variables and servers."""

    def __init__(
        self,
        nests: Iterable[Nest] = (),
        eggs: Iterable[Egg] = (),
        variables: Iterable[EggVariable] = (),
        servers: Iterable[Server] = (),
    ) -> None:
        self.nests = {nest.id: nest for nest in nests}
        self.eggs = {egg.id: egg for egg in eggs}
        self.variables = {variable.id: variable for variable in variables}
        self.servers = {server.id: server for server in servers}
        self.lock = threading.RLock()
        self._last_variable_id = max(self.variables, default=0)

    @classmethod
    def from_seed(cls, data: dict[str, Any]) -> "PanelRepository":
        return cls(
            nests=[_build(Nest, item) for item in data.get("nests") or []],
            eggs=[_build(Egg, item) for item in data.get("eggs") or []],
            variables=[_build(EggVariable, item) for item in data.get("variables") or []],
            servers=[_build(Server, item) for item in data.get("servers") or []],
        )

    def get_nest(self, nest_id: int) -> Nest:
        try:
            return self.nests[nest_id]
        except KeyError as exc:
            raise RecordNotFoundError(f"Nest {nest_id} not found") from exc

    def get_egg(self, egg_id: int) -> Egg:
        try:
            return self.eggs[egg_id]
        except KeyError as exc:
            raise RecordNotFoundError(f"Egg {egg_id} not found") from exc

    def eggs_for_nest(self, nest_id: int) -> list[Egg]:
        return sorted((egg for egg in self.eggs.values() if egg.nest_id == nest_id), key=lambda egg: egg.id)

    def servers_for_egg(self, egg_id: int) -> list[Server]:
        return sorted((s for s in self.servers.values() if s.egg_id == egg_id), key=lambda s: s.id)

    def servers_for_nest(self, nest_id: int) -> list[Server]:
        return sorted((s for s in self.servers.values() if s.nest_id == nest_id), key=lambda s: s.id)

    def variables_for_egg(self, egg_id: int) -> list[EggVariable]:
        return sorted((v for v in self.variables.values() if v.egg_id == egg_id), key=lambda v: v.id)

    def get_variable(self, egg_id: int, variable_id: int) -> EggVariable:
        variable = self.variables.get(variable_id)
        if variable is None or variable.egg_id != egg_id:
            raise RecordNotFoundError(f"Variable {variable_id} not found on egg {egg_id}")
        return variable

    def create_variable(self, egg_id: int, data: dict[str, Any]) -> EggVariable:
        with self.lock:
            self.get_egg(egg_id)
            now = _now()
            variable = EggVariable(
                id=self._last_variable_id + 1,
                egg_id=egg_id,
                created_at=now,
                updated_at=now,
                **data,
            )
            self._last_variable_id = variable.id
            self.variables[variable.id] = variable
            return variable

    def update_variable(self, egg_id: int, variable_id: int, data: dict[str, Any]) -> EggVariable:
        with self.lock:
            variable = self.get_variable(egg_id, variable_id)
            for key, value in data.items():
                setattr(variable, key, value)
            variable.updated_at = _now()
            return variable

    def delete_variable(self, egg_id: int, variable_id: int) -> None:
        with self.lock:
            self.get_variable(egg_id, variable_id)
            del self.variables[variable_id]


def load_seed(path: Path) -> PanelRepository:
    if not path.exists():
        raise RuntimeError(f"Seed file not found: {path}")
    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.load(handle)
    except (OSError, YAMLError) as exc:
        raise RuntimeError(f"Unable to read seed file {path}: {exc}") from exc
    if data is None:
        return PanelRepository()
    if not isinstance(data, dict):
        raise RuntimeError("Seed file must be a mapping at the top level")
    return PanelRepository.from_seed(data)

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Iterable, Optional, Union

from .acl import Authorizer, Capability
from .inheritance import resolve_effective_config, resolve_effective_script
from .models import Egg, EggVariable, Nest, Server
from .repository import PanelRepository, RecordNotFoundError
from .util import decode_json_field, format_timestamp, parse_includes

logger = logging.getLogger(__name__)

TransformFn = Callable[[Any], dict[str, Any]]


class DanglingReferenceError(LookupError):
    """An egg extends another egg that no longer exists."""


@dataclass(frozen=True)
class Item:
    data: Any
    transformer: Union["Transformer", TransformFn]
    resource_name: str


@dataclass(frozen=True)
class Collection:
    data: list[Any]
    transformer: "Transformer"


@dataclass(frozen=True)
class NullResource:
    pass


Resource = Union[Item, Collection, NullResource]


class Transformer:
    """Base class turning an entity into its API representation.

    Subclasses implement ``transform`` and one ``include_<name>`` method per
    entry of ``available_includes``. Relationships are only resolved when the
    caller asked for them.
    """

    resource_name: ClassVar[str] = ""
    available_includes: ClassVar[tuple[str, ...]] = ()
    default_includes: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        repository: PanelRepository,
        authorizer: Authorizer,
        includes: Union[str, Iterable[str], dict[str, dict], None] = None,
    ) -> None:
        self.repository = repository
        self.authorizer = authorizer
        if isinstance(includes, dict):
            self.includes = includes
        else:
            self.includes = parse_includes(includes)

    def transform(self, model: Any) -> dict[str, Any]:
        raise NotImplementedError

    def authorize(self, capability: Capability) -> bool:
        allowed = self.authorizer.authorize(capability)
        if not allowed:
            logger.debug("Relationship on %s denied for %s", self.resource_name, capability.value)
        return allowed

    def child(self, cls: type["Transformer"], name: str) -> "Transformer":
        return cls(self.repository, self.authorizer, self.includes.get(name, {}))

    def item(self, data: Any, transformer: Union["Transformer", TransformFn], resource_name: Optional[str] = None) -> Item:
        if resource_name is None:
            resource_name = transformer.resource_name if isinstance(transformer, Transformer) else self.resource_name
        return Item(data=data, transformer=transformer, resource_name=resource_name)

    def collection(self, data: Iterable[Any], transformer: "Transformer") -> Collection:
        return Collection(data=list(data), transformer=transformer)

    def null(self) -> NullResource:
        return NullResource()

    def requested_includes(self) -> list[str]:
        names = list(self.default_includes)
        for name in self.includes:
            if name not in names:
                names.append(name)
        return [name for name in names if name in self.available_includes]

    def serialize(self, model: Any) -> dict[str, Any]:
        attributes = self.transform(model)
        relationships: dict[str, Any] = {}
        for name in self.requested_includes():
            resource = getattr(self, f"include_{name}")(model)
            relationships[name] = serialize_resource(resource)
        if relationships:
            attributes["relationships"] = relationships
        return {"object": self.resource_name, "attributes": attributes}

    def serialize_collection(self, models: Iterable[Any]) -> dict[str, Any]:
        return serialize_resource(self.collection(models, self))


def serialize_resource(resource: Resource) -> dict[str, Any]:
    if isinstance(resource, NullResource):
        return {"object": "null_resource", "attributes": None}
    if isinstance(resource, Collection):
        return {
            "object": "list",
            "data": [resource.transformer.serialize(model) for model in resource.data],
        }
    if isinstance(resource.transformer, Transformer):
        return resource.transformer.serialize(resource.data)
    return {"object": resource.resource_name, "attributes": resource.transformer(resource.data)}


class EggVariableTransformer(Transformer):
    resource_name = "egg_variable"

    def transform(self, model: EggVariable) -> dict[str, Any]:
        return {
            "id": model.id,
            "egg_id": model.egg_id,
            "name": model.name,
            "description": model.description,
            "env_variable": model.env_variable,
            "default_value": model.default_value,
            "user_viewable": model.user_viewable,
            "user_editable": model.user_editable,
            "rules": model.rules,
            "created_at": format_timestamp(model.created_at),
            "updated_at": format_timestamp(model.updated_at),
        }


class ServerTransformer(Transformer):
    resource_name = "server"

    def transform(self, model: Server) -> dict[str, Any]:
        return {
            "id": model.id,
            "external_id": model.external_id,
            "uuid": model.uuid,
            "identifier": model.identifier,
            "name": model.name,
            "description": model.description,
            "status": model.status,
            "suspended": model.suspended,
            "user": model.owner_id,
            "node": model.node_id,
            "nest": model.nest_id,
            "egg": model.egg_id,
            "container": {
                "startup_command": model.startup,
                "image": model.image,
                "installed": model.status != "installing",
            },
            "created_at": format_timestamp(model.created_at),
            "updated_at": format_timestamp(model.updated_at),
        }


class NestTransformer(Transformer):
    resource_name = "nest"
    available_includes = ("eggs", "servers")

    def transform(self, model: Nest) -> dict[str, Any]:
        return {
            "id": model.id,
            "uuid": model.uuid,
            "author": model.author,
            "name": model.name,
            "description": model.description,
            "created_at": format_timestamp(model.created_at),
            "updated_at": format_timestamp(model.updated_at),
        }

    def include_eggs(self, model: Nest) -> Resource:
        if not self.authorize(Capability.EGGS):
            return self.null()
        return self.collection(self.repository.eggs_for_nest(model.id), self.child(EggTransformer, "eggs"))

    def include_servers(self, model: Nest) -> Resource:
        if not self.authorize(Capability.SERVERS):
            return self.null()
        return self.collection(self.repository.servers_for_nest(model.id), self.child(ServerTransformer, "servers"))


class EggTransformer(Transformer):
    resource_name = "egg"
    available_includes = ("nest", "servers", "config", "script", "variables")

    def transform(self, model: Egg) -> dict[str, Any]:
        return {
            "id": model.id,
            "uuid": model.uuid,
            "name": model.name,
            "nest": model.nest_id,
            "author": model.author,
            "description": model.description,
            # Deprecated; kept for consumers that have not moved to "docker_images".
            "docker_image": model.docker_images[0] if model.docker_images else "",
            "docker_images": list(model.docker_images),
            "config": {
                "files": decode_json_field(model.config_files, field_name="config.files"),
                "startup": decode_json_field(model.config_startup, field_name="config.startup"),
                "logs": decode_json_field(model.config_logs, field_name="config.logs"),
                "stop": model.config_stop,
                "file_denylist": list(model.file_denylist),
                "extends": model.config_from,
            },
            "startup": model.startup,
            "script": {
                "privileged": model.script_is_privileged,
                "install": model.script_install,
                "entry": model.script_entry,
                "container": model.script_container,
                "extends": model.copy_script_from,
            },
            "created_at": format_timestamp(model.created_at),
            "updated_at": format_timestamp(model.updated_at),
        }

    def _parent_lookup(self, model: Egg, reference: str) -> Callable[[int], Egg]:
        def _lookup(parent_id: int) -> Egg:
            try:
                return self.repository.get_egg(parent_id)
            except RecordNotFoundError as exc:
                raise DanglingReferenceError(
                    f"Egg {model.id} has {reference}={parent_id}, but egg {parent_id} does not exist"
                ) from exc

        return _lookup

    def include_nest(self, model: Egg) -> Resource:
        if not self.authorize(Capability.NESTS):
            return self.null()
        return self.item(self.repository.get_nest(model.nest_id), self.child(NestTransformer, "nest"))

    def include_servers(self, model: Egg) -> Resource:
        if not self.authorize(Capability.SERVERS):
            return self.null()
        return self.collection(self.repository.servers_for_egg(model.id), self.child(ServerTransformer, "servers"))

    def include_config(self, model: Egg) -> Resource:
        effective = resolve_effective_config(model, self._parent_lookup(model, "config_from"))
        if effective is None:
            return self.null()

        def _config(config) -> dict[str, Any]:
            return {
                "files": decode_json_field(config.files, field_name="config.files"),
                "startup": decode_json_field(config.startup, field_name="config.startup"),
                "logs": decode_json_field(config.logs, field_name="config.logs"),
                "stop": config.stop,
            }

        return self.item(effective, _config, resource_name="egg_config")

    def include_script(self, model: Egg) -> Resource:
        effective = resolve_effective_script(model, self._parent_lookup(model, "copy_script_from"))
        if effective is None:
            return self.null()

        def _script(script) -> dict[str, Any]:
            return {
                "privileged": script.privileged,
                "install": script.install,
                "entry": script.entry,
                "container": script.container,
            }

        return self.item(effective, _script, resource_name="egg_script")

    def include_variables(self, model: Egg) -> Resource:
        if not self.authorize(Capability.EGGS):
            return self.null()
        return self.collection(self.repository.variables_for_egg(model.id), self.child(EggVariableTransformer, "variables"))

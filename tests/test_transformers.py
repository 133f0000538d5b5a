import json
from datetime import datetime, timedelta, timezone

import pytest

from eggpanel.acl import READ, AllowAll, DenyAll, KeyAuthorizer
from eggpanel.models import Egg
from eggpanel.transformers import DanglingReferenceError, EggTransformer, EggVariableTransformer, NestTransformer
from eggpanel.util import DecodeError, format_timestamp, parse_includes

NULL_RESOURCE = {"object": "null_resource", "attributes": None}


def _egg(repository, egg_id=1, authorizer=None, include=None):
    transformer = EggTransformer(repository, authorizer or AllowAll(), include)
    return transformer.serialize(repository.get_egg(egg_id))


def test_base_representation(repository):
    body = _egg(repository)
    assert body["object"] == "egg"
    attrs = body["attributes"]
    assert attrs["id"] == 1
    assert attrs["nest"] == 1
    assert attrs["docker_image"] == "ghcr.io/pterodactyl/yolks:java_17"
    assert attrs["docker_images"] == ["ghcr.io/pterodactyl/yolks:java_17", "ghcr.io/pterodactyl/yolks:java_8"]
    assert attrs["config"]["files"]["server.properties"]["parser"] == "properties"
    assert attrs["config"]["startup"] == {"done": ")! For help, type "}
    assert attrs["config"]["stop"] == "stop"
    assert attrs["config"]["file_denylist"] == ["*.jar.old"]
    assert attrs["config"]["extends"] is None
    assert attrs["script"] == {
        "privileged": True,
        "install": "#!/bin/ash\necho install",
        "entry": "ash",
        "container": "ghcr.io/pterodactyl/installers:alpine",
        "extends": None,
    }
    assert attrs["created_at"] == "2021-01-01T12:00:00+00:00"
    assert "relationships" not in attrs


def test_docker_image_empty_when_no_images(repository):
    attrs = _egg(repository, egg_id=2)["attributes"]
    assert attrs["docker_image"] == ""
    assert attrs["docker_images"] == []
    assert attrs["config"]["extends"] == 1
    assert attrs["script"]["extends"] == 1


def test_scenario_two_images_without_includes():
    egg = Egg(id=9, uuid="u", nest_id=1, author="a", name="n", docker_images=["a:1", "a:2"])
    attrs = EggTransformer(None, DenyAll()).serialize(egg)["attributes"]
    assert attrs["docker_image"] == "a:1"
    assert attrs["docker_images"] == ["a:1", "a:2"]
    assert "relationships" not in attrs


def test_config_include_is_null_for_own_config(repository):
    relationships = _egg(repository, include="config,script")["attributes"]["relationships"]
    assert relationships["config"] == NULL_RESOURCE
    assert relationships["script"] == NULL_RESOURCE


def test_config_include_resolves_parent_without_authorization(repository):
    relationships = _egg(repository, egg_id=2, authorizer=DenyAll(), include="config")["attributes"]["relationships"]
    config = relationships["config"]
    assert config["object"] == "egg_config"
    assert config["attributes"]["files"]["server.properties"]["find"] == {
        "server-port": "{{server.build.default.port}}"
    }
    assert config["attributes"]["startup"] == {"done": ")! For help, type "}
    assert config["attributes"]["stop"] == "stop"


def test_script_include_keeps_own_privileged_flag(repository):
    script = _egg(repository, egg_id=2, authorizer=DenyAll(), include="script")["attributes"]["relationships"]["script"]
    assert script["attributes"] == {
        "privileged": False,
        "install": "#!/bin/ash\necho install",
        "entry": "ash",
        "container": "ghcr.io/pterodactyl/installers:alpine",
    }


def test_own_values_take_precedence_over_parent(repository):
    repository.get_egg(2).config_stop = "end"
    config = _egg(repository, egg_id=2, include="config")["attributes"]["relationships"]["config"]
    assert config["attributes"]["stop"] == "end"


@pytest.mark.parametrize("authorizer", [DenyAll(), KeyAuthorizer({})])
def test_gated_includes_are_null_when_denied(repository, authorizer):
    relationships = _egg(repository, authorizer=authorizer, include="nest,servers,variables")["attributes"][
        "relationships"
    ]
    assert relationships == {
        "nest": NULL_RESOURCE,
        "servers": NULL_RESOURCE,
        "variables": NULL_RESOURCE,
    }


def test_gated_includes_when_allowed(repository):
    relationships = _egg(repository, include="nest,servers,variables")["attributes"]["relationships"]
    assert relationships["nest"]["object"] == "nest"
    assert relationships["nest"]["attributes"]["name"] == "Minecraft"
    assert relationships["servers"]["object"] == "list"
    server = relationships["servers"]["data"][0]["attributes"]
    assert server["identifier"] == "a1b2c3d4"
    assert server["container"]["installed"] is True
    variables = relationships["variables"]["data"]
    assert [v["object"] for v in variables] == ["egg_variable"] * 3
    assert [v["attributes"]["id"] for v in variables] == [3, 5, 7]


def test_includes_are_gated_independently(repository):
    authorizer = KeyAuthorizer({"r_eggs": READ})
    relationships = _egg(repository, authorizer=authorizer, include="nest,variables")["attributes"]["relationships"]
    assert relationships["nest"] == NULL_RESOURCE
    assert len(relationships["variables"]["data"]) == 3


def test_unknown_includes_are_ignored(repository):
    attrs = _egg(repository, include="owner,variables")["attributes"]
    assert list(attrs["relationships"]) == ["variables"]


def test_nested_include(repository):
    nest = _egg(repository, include="nest.eggs")["attributes"]["relationships"]["nest"]
    eggs = nest["attributes"]["relationships"]["eggs"]["data"]
    assert [egg["attributes"]["name"] for egg in eggs] == ["Vanilla Minecraft", "Paper"]


def test_nest_transformer_includes(repository):
    body = NestTransformer(repository, AllowAll(), "eggs,servers").serialize(repository.get_nest(1))
    assert body["object"] == "nest"
    assert len(body["attributes"]["relationships"]["eggs"]["data"]) == 2
    assert len(body["attributes"]["relationships"]["servers"]["data"]) == 1


def test_transform_is_idempotent(repository):
    include = "nest,servers,config,script,variables"
    first = json.dumps(_egg(repository, egg_id=2, include=include))
    second = json.dumps(_egg(repository, egg_id=2, include=include))
    assert first == second


def test_malformed_config_is_fatal(repository):
    repository.get_egg(1).config_files = "{not json"
    with pytest.raises(DecodeError):
        _egg(repository)


def test_malformed_inherited_config_is_fatal(repository):
    repository.get_egg(1).config_startup = "{"
    with pytest.raises(DecodeError):
        _egg(repository, egg_id=2, include="config")


def test_variable_collection(repository):
    body = EggVariableTransformer(repository, DenyAll()).serialize_collection(repository.variables_for_egg(1))
    assert body["object"] == "list"
    first = body["data"][0]["attributes"]
    assert first["env_variable"] == "SERVER_JARFILE"
    assert first["user_viewable"] is True


def test_format_timestamp():
    assert format_timestamp(None) is None
    assert format_timestamp(datetime(2021, 1, 1, 12, 0, 0, 123456)) == "2021-01-01T12:00:00+00:00"
    offset = datetime(2021, 1, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    assert format_timestamp(offset) == "2021-01-01T12:00:00+00:00"


def test_parse_includes():
    assert parse_includes(None) == {}
    assert parse_includes("nest.eggs, variables,") == {"nest": {"eggs": {}}, "variables": {}}
    assert parse_includes(["config", "config"]) == {"config": {}}


def test_missing_parent_egg_is_a_dangling_reference(repository):
    repository.get_egg(2).copy_script_from = 99
    with pytest.raises(DanglingReferenceError, match="copy_script_from=99"):
        _egg(repository, egg_id=2, include="script")

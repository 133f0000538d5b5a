import pytest

from eggpanel.inheritance import (
    InheritsFrom,
    Own,
    bundle_source,
    resolve_effective_config,
    resolve_effective_script,
)
from eggpanel.models import Egg


def _parent():
    return Egg(
        id=1,
        uuid="parent",
        nest_id=1,
        author="a",
        name="parent",
        config_files='{"a": 1}',
        config_startup='{"done": "ready"}',
        config_logs="{}",
        config_stop="^C",
        script_install="echo parent",
        script_entry="bash",
        script_container="debian:bookworm",
    )


def _lookup(egg_id):
    if egg_id == 1:
        return _parent()
    raise KeyError(egg_id)


def test_bundle_source():
    assert bundle_source(None) == Own()
    assert bundle_source(4) == InheritsFrom(4)


def test_own_bundles_resolve_to_none():
    egg = _parent()
    assert egg.config_source == Own()
    assert resolve_effective_config(egg, _lookup) is None
    assert resolve_effective_script(egg, _lookup) is None


def test_inherited_config_uses_parent_values():
    child = Egg(id=2, uuid="child", nest_id=1, author="a", name="child", config_from=1)
    effective = resolve_effective_config(child, _lookup)
    assert effective.files == '{"a": 1}'
    assert effective.startup == '{"done": "ready"}'
    assert effective.stop == "^C"
    assert child.config_files is None


def test_inherited_config_prefers_own_fields():
    child = Egg(id=2, uuid="child", nest_id=1, author="a", name="child", config_from=1, config_stop="quit")
    effective = resolve_effective_config(child, _lookup)
    assert effective.stop == "quit"
    assert effective.files == '{"a": 1}'


def test_inherited_script():
    child = Egg(
        id=2,
        uuid="child",
        nest_id=1,
        author="a",
        name="child",
        copy_script_from=1,
        script_is_privileged=False,
        script_entry="ash",
    )
    effective = resolve_effective_script(child, _lookup)
    assert effective.privileged is False
    assert effective.install == "echo parent"
    assert effective.entry == "ash"
    assert effective.container == "debian:bookworm"


def test_missing_parent_propagates():
    child = Egg(id=2, uuid="child", nest_id=1, author="a", name="child", config_from=42)
    with pytest.raises(KeyError):
        resolve_effective_config(child, _lookup)

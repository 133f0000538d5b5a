import json
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from eggpanel import api
from eggpanel.acl import READ, READ_WRITE
from eggpanel.config import Settings
from eggpanel.repository import PanelRepository

CREATED = datetime(2021, 1, 1, 12, 0, 0)

SEED = {
    "nests": [
        {
            "id": 1,
            "uuid": "9d1a3bb2-5f3c-4b0e-9a7c-2f4b7d1e0a11",
            "author": "support@pterodactyl.io",
            "name": "Minecraft",
            "description": "Minecraft - the classic game from Mojang.",
            "created_at": CREATED,
            "updated_at": CREATED,
        }
    ],
    "eggs": [
        {
            "id": 1,
            "uuid": "0f2a6c1e-7d4b-4f5e-8a9b-1c2d3e4f5a6b",
            "nest_id": 1,
            "author": "support@pterodactyl.io",
            "name": "Vanilla Minecraft",
            "description": "Minecraft is a game about placing blocks.",
            "docker_images": ["ghcr.io/pterodactyl/yolks:java_17", "ghcr.io/pterodactyl/yolks:java_8"],
            "startup": "java -Xms128M -Xmx{{SERVER_MEMORY}}M -jar {{SERVER_JARFILE}}",
            "config_files": {"server.properties": {"parser": "properties", "find": {"server-port": "{{server.build.default.port}}"}}},
            "config_startup": {"done": ")! For help, type "},
            "config_logs": {},
            "config_stop": "stop",
            "file_denylist": ["*.jar.old"],
            "script_is_privileged": True,
            "script_install": "#!/bin/ash\necho install",
            "script_entry": "ash",
            "script_container": "ghcr.io/pterodactyl/installers:alpine",
            "created_at": CREATED,
            "updated_at": CREATED,
        },
        {
            "id": 2,
            "uuid": "5b6c7d8e-9f0a-4b1c-8d2e-3f4a5b6c7d8e",
            "nest_id": 1,
            "author": "parker@pterodactyl.io",
            "name": "Paper",
            "description": "High performance Spigot fork.",
            "docker_images": [],
            "startup": "java -jar {{SERVER_JARFILE}}",
            "config_from": 1,
            "copy_script_from": 1,
            "script_is_privileged": False,
            "created_at": CREATED,
            "updated_at": CREATED,
        },
    ],
    "variables": [
        {
            "id": 3,
            "egg_id": 1,
            "name": "Server Jar File",
            "description": "The name of the server jarfile to run the server with.",
            "env_variable": "SERVER_JARFILE",
            "default_value": "server.jar",
            "user_viewable": True,
            "user_editable": True,
            "rules": "required|regex:/^([\\w\\d._-]+)(\\.jar)$/",
            "created_at": CREATED,
            "updated_at": CREATED,
        },
        {
            "id": 5,
            "egg_id": 1,
            "name": "Server Version",
            "description": "The version of Minecraft to download.",
            "env_variable": "VANILLA_VERSION",
            "default_value": "latest",
            "user_viewable": True,
            "user_editable": True,
            "rules": "required|string|between:3,15",
            "created_at": CREATED,
            "updated_at": CREATED,
        },
        {
            "id": 7,
            "egg_id": 1,
            "name": "Build Type",
            "description": None,
            "env_variable": "BUILD_TYPE",
            "default_value": "release",
            "user_viewable": False,
            "user_editable": False,
            "rules": "required|string",
            "created_at": CREATED,
            "updated_at": CREATED,
        },
    ],
    "servers": [
        {
            "id": 1,
            "uuid": "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d",
            "name": "Survival",
            "owner_id": 1,
            "node_id": 1,
            "nest_id": 1,
            "egg_id": 1,
            "status": None,
            "startup": "java -Xms128M -Xmx1024M -jar server.jar",
            "image": "ghcr.io/pterodactyl/yolks:java_17",
            "created_at": CREATED,
            "updated_at": CREATED,
        }
    ],
}

ALL_PERMISSIONS = {"r_nests": READ_WRITE, "r_eggs": READ_WRITE, "r_servers": READ_WRITE}


@pytest.fixture
def repository():
    return PanelRepository.from_seed(json.loads(json.dumps(SEED, default=str)))


@pytest.fixture
def settings():
    return Settings(
        api_keys=[
            {"token": "admin", "permissions": ALL_PERMISSIONS},
            {"token": "readonly", "permissions": {"r_eggs": READ}},
            {"token": "nothing", "permissions": {}},
        ]
    )


@pytest.fixture
def client(repository, settings):
    api.app.dependency_overrides[api.get_settings] = lambda: settings
    api.app.dependency_overrides[api.get_repository] = lambda: repository
    with TestClient(api.app) as test_client:
        yield test_client
    api.app.dependency_overrides.clear()

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .inheritance import BundleSource, bundle_source


@dataclass
class Nest:
    id: int
    uuid: str
    author: str
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Egg:
    id: int
    uuid: str
    nest_id: int
    author: str
    name: str
    description: Optional[str] = None
    docker_images: list[str] = field(default_factory=list)
    startup: Optional[str] = None
    config_files: Optional[str] = None
    config_startup: Optional[str] = None
    config_logs: Optional[str] = None
    config_stop: Optional[str] = None
    file_denylist: list[str] = field(default_factory=list)
    config_from: Optional[int] = None
    script_is_privileged: bool = True
    script_install: Optional[str] = None
    script_entry: Optional[str] = None
    script_container: Optional[str] = None
    copy_script_from: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def config_source(self) -> BundleSource:
        return bundle_source(self.config_from)

    @property
    def script_source(self) -> BundleSource:
        return bundle_source(self.copy_script_from)


@dataclass
class EggVariable:
    id: int
    egg_id: int
    name: str
    env_variable: str
    description: Optional[str] = None
    default_value: Optional[str] = None
    user_viewable: bool = False
    user_editable: bool = False
    rules: str = "nullable|string"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Server:
    id: int
    uuid: str
    name: str
    owner_id: int
    node_id: int
    nest_id: int
    egg_id: int
    external_id: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    suspended: bool = False
    startup: Optional[str] = None
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def identifier(self) -> str:
        return self.uuid[:8]

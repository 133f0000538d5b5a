from __future__ import annotations

import logging
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool

from .models import EggVariable
from .repository import PanelRepository

logger = logging.getLogger(__name__)

RESERVED_ENV_NAMES = frozenset(
    {"SERVER_MEMORY", "SERVER_IP", "SERVER_PORT", "ENV", "HOME", "USER", "STARTUP", "SERVER_UUID", "UUID"}
)
_ENV_NAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")


class VariableValidationError(ValueError):
    """A variable mutation breaks one of the egg variable rules."""


class VariableFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1, max_length=191)
    description: Optional[str] = None
    env_variable: str = Field(min_length=1, max_length=191)
    default_value: Optional[str] = None
    user_viewable: StrictBool
    user_editable: StrictBool
    rules: str = Field(min_length=1)


class VariablePayload(VariableFields):
    id: Optional[int] = None


def check_env_variable(env_variable: str) -> None:
    if not _ENV_NAME_RE.match(env_variable):
        raise VariableValidationError(
            f"The environment variable name '{env_variable}' may only contain letters, numbers and underscores."
        )
    if env_variable.upper() in RESERVED_ENV_NAMES:
        raise VariableValidationError(
            f"Cannot use the protected name '{env_variable}' for this environment variable."
        )


def _field_data(fields: VariableFields) -> dict:
    return fields.model_dump(exclude={"id"})


class VariableService:
    def __init__(self, repository: PanelRepository) -> None:
        self.repository = repository

    def create(self, egg_id: int, fields: VariableFields) -> EggVariable:
        with self.repository.lock:
            check_env_variable(fields.env_variable)
            taken = {v.env_variable for v in self.repository.variables_for_egg(egg_id)}
            if fields.env_variable in taken:
                raise VariableValidationError(
                    f"The environment variable '{fields.env_variable}' is already assigned to this egg."
                )
            variable = self.repository.create_variable(egg_id, _field_data(fields))
        logger.info("Created variable %s (%s) on egg %s", variable.id, variable.env_variable, egg_id)
        return variable

    def bulk_update(self, egg_id: int, items: list[VariablePayload]) -> list[EggVariable]:
        """Apply every item or none of them, then return the egg's full variable list."""
        with self.repository.lock:
            self.repository.get_egg(egg_id)
            env_names = {v.id: v.env_variable for v in self.repository.variables_for_egg(egg_id)}
            pending: dict[int, str] = {}
            new_names: list[str] = []
            for item in items:
                check_env_variable(item.env_variable)
                if item.id is None:
                    new_names.append(item.env_variable)
                    continue
                self.repository.get_variable(egg_id, item.id)
                if item.id in pending:
                    raise VariableValidationError(f"Variable {item.id} appears more than once.")
                pending[item.id] = item.env_variable
            env_names.update(pending)
            final = list(env_names.values()) + new_names
            duplicates = sorted({name for name in final if final.count(name) > 1})
            if duplicates:
                raise VariableValidationError(
                    f"Environment variables must be unique per egg: {', '.join(duplicates)}"
                )

            for item in items:
                if item.id is None:
                    self.repository.create_variable(egg_id, _field_data(item))
                else:
                    self.repository.update_variable(egg_id, item.id, _field_data(item))
            variables = self.repository.variables_for_egg(egg_id)
        logger.info("Updated %d variable(s) on egg %s", len(items), egg_id)
        return variables

    def delete(self, egg_id: int, variable_id: int) -> None:
        self.repository.delete_variable(egg_id, variable_id)
        logger.info("Deleted variable %s from egg %s", variable_id, egg_id)

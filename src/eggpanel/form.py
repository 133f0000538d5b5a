"""Client-side editing of the variables attached to an egg.

The form keeps a cached copy of the egg and its variables plus an ordered
list of editable drafts. The cache only changes after the server confirmed a
mutation; adding a placeholder is the one local-only change.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import ValidationError

from .client import EggRelations, EggResource, EggVariableResource, PanelClient, PanelRequestError
from .flash import FlashStore
from .variables import VariableFields

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "name",
    "description",
    "env_variable",
    "default_value",
    "user_viewable",
    "user_editable",
    "rules",
)


class FormState(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    SUBMITTING = "submitting"


@dataclass
class VariableDraft:
    id: Optional[int] = None
    name: Any = ""
    description: Any = ""
    env_variable: Any = ""
    default_value: Any = ""
    user_viewable: Any = False
    user_editable: Any = False
    rules: Any = ""

    @classmethod
    def from_resource(cls, variable: EggVariableResource) -> "VariableDraft":
        return cls(id=variable.id, **{name: getattr(variable, name) for name in EDITABLE_FIELDS})

    @property
    def persisted(self) -> bool:
        return self.id is not None

    def payload(self) -> dict[str, Any]:
        data = asdict(self)
        if data["id"] is None:
            del data["id"]
        return data

    def errors(self) -> dict[str, str]:
        try:
            VariableFields.model_validate({name: getattr(self, name) for name in EDITABLE_FIELDS})
        except ValidationError as exc:
            return {".".join(str(part) for part in err["loc"]): err["msg"] for err in exc.errors()}
        return {}


class EggCache:
    def __init__(self, egg: EggResource) -> None:
        self.data = egg

    def mutate(self, fn: Callable[[EggResource], EggResource]) -> EggResource:
        self.data = fn(self.data)
        return self.data

    @property
    def variables(self) -> list[EggVariableResource]:
        return list(self.data.relations.variables or [])


def _with_variables(variables: list[EggVariableResource]) -> Callable[[EggResource], EggResource]:
    def _apply(egg: EggResource) -> EggResource:
        return egg.model_copy(update={"relations": EggRelations(variables=list(variables))})

    return _apply


class VariableForm:
    def __init__(self, client: PanelClient, egg_id: int, flash: FlashStore, flash_key: str = "egg") -> None:
        self.client = client
        self.egg_id = egg_id
        self.flash = flash
        self.flash_key = flash_key
        self.state = FormState.IDLE
        self.dirty = False
        self.cache: Optional[EggCache] = None
        self.drafts: list[VariableDraft] = []
        self.deleting: set[int] = set()

    def load(self) -> Optional[EggResource]:
        try:
            egg = self.client.get_egg(self.egg_id, include=["variables"])
        except PanelRequestError as exc:
            logger.warning("Unable to load egg %s: %s", self.egg_id, exc)
            self.flash.clear_and_add_http_error(self.flash_key, exc)
            return None
        self.cache = EggCache(egg)
        self._reset_drafts()
        self.state = FormState.EDITING
        return egg

    def _loaded_cache(self) -> EggCache:
        if self.cache is None:
            raise RuntimeError("Load the egg before editing its variables")
        return self.cache

    def _reset_drafts(self) -> None:
        self.drafts = [VariableDraft.from_resource(v) for v in self._loaded_cache().variables]
        self.dirty = False

    def _ensure_editable(self) -> None:
        self._loaded_cache()
        if self.state is FormState.SUBMITTING:
            raise RuntimeError("The form is disabled while a submission is in flight")

    def _touch(self) -> None:
        self.dirty = True
        self.state = FormState.EDITING

    def edit(self, index: int, **changes: Any) -> VariableDraft:
        self._ensure_editable()
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown variable field(s): {', '.join(sorted(unknown))}")
        draft = self.drafts[index]
        for name, value in changes.items():
            setattr(draft, name, value)
        self._touch()
        return draft

    def add(self) -> VariableDraft:
        self._ensure_editable()
        draft = VariableDraft()
        self.drafts.append(draft)
        self._touch()
        return draft

    def discard(self, index: int) -> None:
        self._ensure_editable()
        if self.drafts[index].persisted:
            raise ValueError("Saved variables can only be removed with delete()")
        del self.drafts[index]
        self._touch()

    @property
    def errors(self) -> dict[int, dict[str, str]]:
        result = {}
        for index, draft in enumerate(self.drafts):
            draft_errors = draft.errors()
            if draft_errors:
                result[index] = draft_errors
        return result

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def busy(self) -> bool:
        return self.state is FormState.SUBMITTING or bool(self.deleting)

    @property
    def can_submit(self) -> bool:
        return self.cache is not None and not self.busy and self.is_valid

    def can_delete(self, variable_id: int) -> bool:
        return self.cache is not None and not self.busy

    def submit(self) -> bool:
        """Send every draft in order; the server's answer replaces the local cache."""
        if not self.can_submit:
            return False
        cache = self._loaded_cache()
        self.state = FormState.SUBMITTING
        try:
            variables = self.client.update_egg_variables(self.egg_id, [d.payload() for d in self.drafts])
        except PanelRequestError as exc:
            logger.warning("Updating variables of egg %s failed: %s", self.egg_id, exc)
            self.flash.clear_and_add_http_error(self.flash_key, exc)
            self.dirty = True
            return False
        finally:
            self.state = FormState.EDITING
        cache.mutate(_with_variables(variables))
        self._reset_drafts()
        self.state = FormState.IDLE
        return True

    def delete(self, variable_id: int, confirm: Callable[[], bool]) -> bool:
        """Delete one saved variable after ``confirm()`` agreed.

        Deleting a variable removes it from every server using this egg.
        """
        if not self.can_delete(variable_id):
            return False
        cache = self._loaded_cache()
        if not any(d.id == variable_id for d in self.drafts):
            raise ValueError(f"Variable {variable_id} is not part of this form")
        if not confirm():
            return False
        self.deleting.add(variable_id)
        try:
            self.client.delete_egg_variable(self.egg_id, variable_id)
        except PanelRequestError as exc:
            logger.warning("Deleting variable %s of egg %s failed: %s", variable_id, self.egg_id, exc)
            self.flash.clear_and_add_http_error(self.flash_key, exc)
            return False
        finally:
            self.deleting.discard(variable_id)
        remaining = [v for v in cache.variables if v.id != variable_id]
        cache.mutate(_with_variables(remaining))
        self.drafts = [d for d in self.drafts if d.id != variable_id]
        return True

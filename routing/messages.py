"""
Runtime message models.

Inbound messages are JSON objects tagged by "type". Field names are accepted in
snake_case or in the camelCase the tab-side script uses.
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel


class RuntimeMessage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ----------------- tab manager -----------------

class TabManagerAdd(RuntimeMessage):
    type: Literal["TAB_MANAGER_ADD"]


class TabManagerRemove(RuntimeMessage):
    type: Literal["TAB_MANAGER_REMOVE"]
    tab_handle: Optional[int] = None
    slot: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _needs_target(self) -> "TabManagerRemove":
        if self.tab_handle is None and self.slot is None:
            raise ValueError("tab_handle or slot is required")
        return self


class TabManagerList(RuntimeMessage):
    type: Literal["TAB_MANAGER_LIST"]


class TabManagerJump(RuntimeMessage):
    type: Literal["TAB_MANAGER_JUMP"]
    slot: int = Field(ge=1)


class TabManagerCycle(RuntimeMessage):
    type: Literal["TAB_MANAGER_CYCLE"]
    direction: Literal["next", "prev"]


class TabManagerSaveScroll(RuntimeMessage):
    type: Literal["TAB_MANAGER_SAVE_SCROLL"]


class TabManagerReorder(RuntimeMessage):
    type: Literal["TAB_MANAGER_REORDER"]
    entries: List[Dict[str, Any]] = Field(alias="list")


class ContentScriptReady(RuntimeMessage):
    type: Literal["CONTENT_SCRIPT_READY"]


# ----------------- sessions -----------------

class SessionSave(RuntimeMessage):
    type: Literal["SESSION_SAVE"]
    name: str


class SessionList(RuntimeMessage):
    type: Literal["SESSION_LIST"]


class SessionLoadPlan(RuntimeMessage):
    type: Literal["SESSION_LOAD_PLAN"]
    name: str


class SessionLoad(RuntimeMessage):
    type: Literal["SESSION_LOAD"]
    name: str


class SessionDelete(RuntimeMessage):
    type: Literal["SESSION_DELETE"]
    name: str


class SessionRename(RuntimeMessage):
    type: Literal["SESSION_RENAME"]
    old_name: str
    new_name: str


class SessionUpdate(RuntimeMessage):
    type: Literal["SESSION_UPDATE"]
    name: str


class SessionReplace(RuntimeMessage):
    type: Literal["SESSION_REPLACE"]
    old_name: str
    new_name: str


# ----------------- misc -----------------

class GetCurrentTab(RuntimeMessage):
    type: Literal["GET_CURRENT_TAB"]


class SwitchToTab(RuntimeMessage):
    type: Literal["SWITCH_TO_TAB"]
    tab_handle: int


InboundMessage = Annotated[
    Union[
        TabManagerAdd,
        TabManagerRemove,
        TabManagerList,
        TabManagerJump,
        TabManagerCycle,
        TabManagerSaveScroll,
        TabManagerReorder,
        ContentScriptReady,
        SessionSave,
        SessionList,
        SessionLoadPlan,
        SessionLoad,
        SessionDelete,
        SessionRename,
        SessionUpdate,
        SessionReplace,
        GetCurrentTab,
        SwitchToTab,
    ],
    Field(discriminator="type"),
]

_inbound_adapter = TypeAdapter(InboundMessage)

KNOWN_MESSAGE_TYPES = frozenset(
    model.model_fields["type"].annotation.__args__[0]
    for model in RuntimeMessage.__subclasses__()
)


def parse_message(raw: Dict[str, Any]) -> RuntimeMessage:
    """Validate a raw message (raises pydantic.ValidationError)"""
    return _inbound_adapter.validate_python(raw)

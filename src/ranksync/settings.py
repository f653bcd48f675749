"""Host-supplied configuration objects.

The host property pane delivers three objects each cycle: provider-level
settings, view-level settings and the hidden dump holder. The engine only
compares the first two shallowly to decide between rebuilding and patching.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

_SETTINGS_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ProviderSettings(BaseModel):
    """Data provider options; a change rebuilds the provider from scratch."""
    filter_globally: bool = True
    max_nested_sorting_criteria: int = Field(3, ge=1)
    max_group_columns: int = Field(3, ge=1)
    multi_selection: bool = True

    model_config = _SETTINGS_CONFIG


class ViewSettings(BaseModel):
    """Cosmetic view options; a change rebuilds the view model."""
    overview_mode: bool = False
    summary_header: bool = True
    animated: bool = True
    expand_line_on_hover: bool = False
    side_panel: bool = False
    side_panel_collapsed: bool = True
    default_slope_graph_mode: Literal["item", "band"] = "item"
    row_height: int = 18
    row_padding: int = 2
    group_height: int = 40
    group_padding: int = 5

    model_config = _SETTINGS_CONFIG


class DumpSettings(BaseModel):
    """Hidden holder of the last persisted dump text."""
    dump: str = ""

    model_config = _SETTINGS_CONFIG


# object name -> (attribute, accepted host names)
_OBJECTS = {
    "provider": ("provider", ("provider",)),
    "view": ("view", ("view", "lineup")),
    "dump": ("dump", ("dump", "dumpObject")),
}


class VisualSettings(BaseModel):
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    view: ViewSettings = Field(default_factory=ViewSettings)
    dump: DumpSettings = Field(default_factory=DumpSettings)

    @classmethod
    def parse(cls, objects: Optional[Mapping]) -> "VisualSettings":
        """Build settings from the host objects mapping.

        Missing objects fall back to defaults. An object that fails validation
        is logged and replaced by its defaults rather than failing the cycle.
        """
        settings = cls()
        if not objects:
            return settings

        for attribute, names in _OBJECTS.values():
            raw = next((objects[n] for n in names if n in objects), None)
            if raw is None:
                continue
            model_type = type(getattr(settings, attribute))
            if attribute == "dump" and isinstance(raw, Mapping) and "dumpProperty" in raw:
                raw = {"dump": raw["dumpProperty"]}
            try:
                setattr(settings, attribute, model_type.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Ignoring invalid {attribute} settings: {e}")
        return settings

    def enumerate_properties(self, object_name: str) -> Optional[Dict[str, Any]]:
        """Properties to show in the property pane; the dump object stays hidden."""
        if object_name in _OBJECTS["dump"][1]:
            return None
        for attribute, names in _OBJECTS.values():
            if object_name in names:
                return getattr(self, attribute).model_dump(by_alias=True)
        return None

"""Display options bitmask: what the viewer's frame shows around a content."""
from __future__ import annotations
from typing import Any, Dict, Mapping, Optional

from activity_studio.domain.h5p.models import (
    DISABLE_ALL,
    DISABLE_FRAME,
    DISABLE_NONE,
    DISPLAY_ALL,
    DISPLAY_COPYRIGHT,
    DISPLAY_DOWNLOAD,
    DISPLAY_EMBED,
    DISPLAY_FRAME,
    DISPLAY_OPTION_NAMES,
)

# Bits the platform still permits for each disable flag. Each step only removes bits.
PERMITTED_BY_DISABLE_FLAG: Dict[str, int] = {
    DISABLE_NONE: DISPLAY_ALL,
    DISABLE_FRAME: DISPLAY_ALL & ~DISPLAY_FRAME,
    DISABLE_ALL: 0,
}

_TRUE_STRINGS = {"1", "true", "on", "yes"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def permitted_mask(disable_flag: Optional[str]) -> int:
    # Unknown flags permit nothing
    return PERMITTED_BY_DISABLE_FLAG.get(disable_flag or DISABLE_NONE, 0)


def requested_mask(flags: Optional[Mapping[str, Any]]) -> int:
    """Four independent booleans → bitmask. Missing flags count as off."""
    mask = 0
    for name, bit in DISPLAY_OPTION_NAMES.items():
        if flags and _as_bool(flags.get(name)):
            mask |= bit
    return mask


def combine_display_options(flags: Optional[Mapping[str, Any]], disable_flag: Optional[str]) -> int:
    """Requested bits AND the bits the disable flag still permits."""
    return requested_mask(flags) & permitted_mask(disable_flag)


def display_options_for_view(display_options: int, disable_flag: Optional[str]) -> Dict[str, bool]:
    """Options handed to the player; a preview override can only hide more."""
    effective = display_options & permitted_mask(disable_flag)
    return {
        "frame": bool(effective & DISPLAY_FRAME),
        "export": bool(effective & DISPLAY_DOWNLOAD),
        "embed": bool(effective & DISPLAY_EMBED),
        "copyright": bool(effective & DISPLAY_COPYRIGHT),
        "icon": bool(effective & DISPLAY_FRAME),
    }

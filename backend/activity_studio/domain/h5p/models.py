"""H5P content domain models: pure Python, no DB or HTTP dependencies."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# Display options shown to viewers (bit set = option shown)
DISPLAY_FRAME = 1
DISPLAY_DOWNLOAD = 2
DISPLAY_EMBED = 4
DISPLAY_COPYRIGHT = 8
DISPLAY_ALL = DISPLAY_FRAME | DISPLAY_DOWNLOAD | DISPLAY_EMBED | DISPLAY_COPYRIGHT

DISPLAY_OPTION_NAMES: Dict[str, int] = {
    "frame": DISPLAY_FRAME,
    "download": DISPLAY_DOWNLOAD,
    "embed": DISPLAY_EMBED,
    "copyright": DISPLAY_COPYRIGHT,
}

# Platform disable flag
DISABLE_NONE = "none"
DISABLE_FRAME = "frame"
DISABLE_ALL = "all"
VALID_DISABLE_FLAGS = {DISABLE_NONE, DISABLE_FRAME, DISABLE_ALL}

TITLE_MAX_LENGTH = 255


@dataclass(frozen=True)
class LibraryReference:
    machine_name: str
    major_version: int
    minor_version: int
    library_id: Optional[int] = None

    @property
    def is_resolved(self) -> bool:
        return self.library_id is not None

    @property
    def version(self) -> str:
        return f"{self.major_version}.{self.minor_version}"

    def same_library(self, other: Optional["LibraryReference"]) -> bool:
        if other is None:
            return False
        return (self.machine_name, self.major_version, self.minor_version) == (
            other.machine_name,
            other.major_version,
            other.minor_version,
        )

    def with_id(self, library_id: int) -> "LibraryReference":
        return LibraryReference(self.machine_name, self.major_version, self.minor_version, library_id)

    def __str__(self) -> str:
        return f"{self.machine_name} {self.version}"


@dataclass
class Library:
    """An installed content type."""
    id: int
    machine_name: str
    major_version: int
    minor_version: int
    patch_version: int = 0
    title: str = ""
    embed_types: str = "iframe"
    runnable: bool = True

    @property
    def reference(self) -> LibraryReference:
        return LibraryReference(self.machine_name, self.major_version, self.minor_version, self.id)


@dataclass
class ContentRecord:
    id: Optional[int]
    library: LibraryReference
    params: Any
    metadata: Dict[str, Any] = field(default_factory=dict)
    display_options: int = DISPLAY_ALL
    disable_flag: str = DISABLE_NONE
    created_at: str = ""
    updated_at: str = ""

    @property
    def title(self) -> str:
        return (self.metadata.get("title") or "").strip()

"""Error codes carried by failed Results, and collaborator exceptions."""
from __future__ import annotations

# Validation: detected before any mutation, never retried automatically
MALFORMED_LIBRARY_STRING = "MalformedLibraryString"
LIBRARY_NOT_FOUND = "LibraryNotFound"
INVALID_PARAMETERS = "InvalidParameters"
MISSING_TITLE = "MissingTitle"
TITLE_TOO_LONG = "TitleTooLong"

# Retryable by resubmitting the same update
MIGRATION_FAILED = "MigrationFailed"

CONTENT_NOT_FOUND = "ContentNotFound"
CONTENT_NOT_ACCESSIBLE = "ContentNotAccessible"

# Clone path: reported through notifications only
NOT_PUBLIC = "NotPublic"
SOURCE_GONE = "SourceGone"

# Activity CRUD
ACTIVITY_NOT_FOUND = "ActivityNotFound"
PLAYLIST_NOT_FOUND = "PlaylistNotFound"
INVALID_ACTIVITY = "InvalidActivity"

NOT_FOUND_CODES = {
    CONTENT_NOT_FOUND,
    ACTIVITY_NOT_FOUND,
    PLAYLIST_NOT_FOUND,
}


class CollaboratorError(Exception):
    """Raised by an external collaborator; converted to Result.fail by the caller."""


class MigrationError(CollaboratorError):
    """Asset/dependency migration could not be completed."""

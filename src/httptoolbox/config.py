"""
=============================================================================
TOOLBOX CONFIGURATION
=============================================================================

Centralized configuration for the request/response helpers.

=============================================================================
WHY A FROZEN DATACLASS?
=============================================================================

A single ToolboxConfig is typically created at startup and shared by every
request handler. Handlers run concurrently, so the configuration must not
change underneath a decode or upload that is already in progress:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    SHARED, READ-ONLY CONFIG                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   startup ──► ToolboxConfig(...) ──┬──► handler A (read_json)       │
    │                  (frozen)          ├──► handler B (upload_files)    │
    │                                    └──► handler C (read_xml)        │
    │                                                                      │
    │   Need different limits for one endpoint?                           │
    │       strict = config.replace(max_json_size=4096)                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    1. Code:         ToolboxConfig(max_upload_size=50 * 1024 * 1024)
    2. Environment:  TOOLBOX_MAX_UPLOAD_SIZE=52428800 → ToolboxConfig.from_env()
    3. Defaults:     the values declared on the dataclass

A size of 0 means "use the default", so a zero-valued environment variable
or keyword never disables a limit.

=============================================================================
"""

import os
import dataclasses
from dataclasses import dataclass


DEFAULT_MAX_SIZE = 10 * 1024 * 1024  # 10 MB

# Room for multipart framing and text fields on top of one maximum-size file.
FORM_OVERHEAD = 1024 * 1024


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_types(name: str) -> tuple[str, ...]:
    value = os.getenv(name, "")
    return tuple(t.strip() for t in value.split(",") if t.strip())


@dataclass(frozen=True)
class ToolboxConfig:
    """
    Limits and policies used by the toolbox helpers.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    BODY DECODING
    - max_json_size, max_xml_size, allow_unknown_json_fields

    UPLOADS
    - max_upload_size, max_form_size, allowed_upload_types,
      rollback_partial_uploads

    SQL LOADER
    - strict_sql

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # BODY DECODING
    # ─────────────────────────────────────────────────────────────────────

    max_json_size: int = DEFAULT_MAX_SIZE
    """Largest JSON body read_json() accepts, in bytes."""

    max_xml_size: int = DEFAULT_MAX_SIZE
    """Largest XML body read_xml() accepts, in bytes."""

    allow_unknown_json_fields: bool = False
    """
    Accept JSON object keys the target model does not declare.
    Off by default: a typo in a client payload is reported, not ignored.
    """

    # ─────────────────────────────────────────────────────────────────────
    # UPLOADS
    # ─────────────────────────────────────────────────────────────────────

    max_upload_size: int = DEFAULT_MAX_SIZE
    """Largest single uploaded file, in bytes."""

    max_form_size: int = 0
    """
    Largest multipart body, in bytes. 0 means max_upload_size plus
    FORM_OVERHEAD, so one maximum-size file always fits.
    """

    allowed_upload_types: tuple[str, ...] = ()
    """
    Sniffed MIME types accepted for uploads, e.g. ("image/png", "image/jpeg").
    Empty means every type is accepted.
    """

    rollback_partial_uploads: bool = True
    """
    When a file in a multi-file upload fails validation, delete the files
    already stored by the same call.
    """

    # ─────────────────────────────────────────────────────────────────────
    # SQL LOADER
    # ─────────────────────────────────────────────────────────────────────

    strict_sql: bool = False
    """Treat a query block left open at end of file as an error."""

    def __post_init__(self):
        # Accept any iterable (list, set) for the allow-list, store a tuple.
        if not isinstance(self.allowed_upload_types, tuple):
            object.__setattr__(self, "allowed_upload_types", tuple(self.allowed_upload_types))

    # =========================================================================
    # EFFECTIVE LIMITS
    # =========================================================================

    @property
    def json_limit(self) -> int:
        return self.max_json_size or DEFAULT_MAX_SIZE

    @property
    def xml_limit(self) -> int:
        return self.max_xml_size or DEFAULT_MAX_SIZE

    @property
    def upload_limit(self) -> int:
        return self.max_upload_size or DEFAULT_MAX_SIZE

    @property
    def form_limit(self) -> int:
        return self.max_form_size or self.upload_limit + FORM_OVERHEAD

    def replace(self, **changes) -> "ToolboxConfig":
        """Return a copy with some fields changed."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_env(cls, prefix: str = "TOOLBOX_") -> "ToolboxConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        TOOLBOX_MAX_JSON_SIZE              JSON body limit (bytes)
        TOOLBOX_MAX_XML_SIZE               XML body limit (bytes)
        TOOLBOX_MAX_UPLOAD_SIZE            Upload limit (bytes)
        TOOLBOX_MAX_FORM_SIZE              Multipart body limit (bytes)
        TOOLBOX_ALLOWED_UPLOAD_TYPES       Comma separated MIME types
        TOOLBOX_ALLOW_UNKNOWN_JSON_FIELDS  1/true/yes/on
        TOOLBOX_ROLLBACK_PARTIAL_UPLOADS   1/true/yes/on (default on)
        TOOLBOX_STRICT_SQL                 1/true/yes/on

        =====================================================================
        """
        return cls(
            max_json_size=int(os.getenv(f"{prefix}MAX_JSON_SIZE", str(DEFAULT_MAX_SIZE))),
            max_xml_size=int(os.getenv(f"{prefix}MAX_XML_SIZE", str(DEFAULT_MAX_SIZE))),
            max_upload_size=int(os.getenv(f"{prefix}MAX_UPLOAD_SIZE", str(DEFAULT_MAX_SIZE))),
            max_form_size=int(os.getenv(f"{prefix}MAX_FORM_SIZE", "0")),
            allowed_upload_types=_env_types(f"{prefix}ALLOWED_UPLOAD_TYPES"),
            allow_unknown_json_fields=_env_bool(f"{prefix}ALLOW_UNKNOWN_JSON_FIELDS", False),
            rollback_partial_uploads=_env_bool(f"{prefix}ROLLBACK_PARTIAL_UPLOADS", True),
            strict_sql=_env_bool(f"{prefix}STRICT_SQL", False),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Call once at startup so a bad limit fails the deployment rather than
        the first request that hits it.
        """
        for name in ("max_json_size", "max_xml_size", "max_upload_size", "max_form_size"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")

        for content_type in self.allowed_upload_types:
            if "/" not in content_type:
                raise ValueError(f"allowed_upload_types entry is not a MIME type: {content_type!r}")

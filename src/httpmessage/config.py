"""
=============================================================================
PACKAGE CONFIGURATION
=============================================================================

Centralized configuration for the message layer.

Most of this package is pure data modelling, but a few decisions depend on
the deployment: which protocol version a message defaults to, where the
server drops uploaded temp files (needed to tell a genuine upload from an
arbitrary path), and how verbose logging should be.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Explicit MessageConfig passed to a factory                     │
    │      └── Request.from_environ(environ, config=MessageConfig(...))  │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTPMESSAGE_UPLOAD_DIR=/var/tmp/uploads                   │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Optional


SUPPORTED_PROTOCOL_VERSIONS = ("1.0", "1.1", "2.0")


@dataclass
class MessageConfig:
    """
    Configuration for messages and uploaded files.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    MESSAGES
    - default_protocol_version

    UPLOADS
    - upload_dir, copy_chunk_size

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # MESSAGES
    # ─────────────────────────────────────────────────────────────────────

    default_protocol_version: str = "1.1"
    """
    Protocol version given to messages that don't specify one.
    Must be one of 1.0, 1.1, 2.0.
    """

    # ─────────────────────────────────────────────────────────────────────
    # UPLOADS
    # ─────────────────────────────────────────────────────────────────────

    upload_dir: str = field(default_factory=tempfile.gettempdir)
    """
    Directory the server writes uploaded temp files to.
    A server-originated upload is only moved if its source lives here.
    """

    copy_chunk_size: int = 64 * 1024
    """
    Buffer size in bytes used when copying an upload to a stream target.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    DEBUG shows which URI convention and upload strategy was picked.
    """

    @classmethod
    def from_env(cls) -> "MessageConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTPMESSAGE_PROTOCOL_VERSION  Default protocol (default: 1.1)
        HTTPMESSAGE_UPLOAD_DIR        Upload temp dir (default: system tmp)
        HTTPMESSAGE_COPY_CHUNK_SIZE   Copy buffer size (default: 65536)
        HTTPMESSAGE_LOG_LEVEL         Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            default_protocol_version=os.getenv("HTTPMESSAGE_PROTOCOL_VERSION", "1.1"),
            upload_dir=os.getenv("HTTPMESSAGE_UPLOAD_DIR", tempfile.gettempdir()),
            copy_chunk_size=int(os.getenv("HTTPMESSAGE_COPY_CHUNK_SIZE", str(64 * 1024))),
            log_level=os.getenv("HTTPMESSAGE_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fails fast with ValueError so a bad deployment setting surfaces at
        startup rather than on the first upload.
        """
        if self.default_protocol_version not in SUPPORTED_PROTOCOL_VERSIONS:
            raise ValueError(
                f"Invalid default_protocol_version: {self.default_protocol_version}. "
                f"Must be one of: {', '.join(SUPPORTED_PROTOCOL_VERSIONS)}"
            )

        if not self.upload_dir:
            raise ValueError("upload_dir must not be empty")

        if self.copy_chunk_size < 1:
            raise ValueError("copy_chunk_size must be >= 1")

        if not isinstance(getattr(logging, self.log_level.upper(), None), int):
            raise ValueError(f"Invalid log_level: {self.log_level}")


_default_config: Optional[MessageConfig] = None


def get_default_config() -> MessageConfig:
    """Return the process-wide default config, loading it from the environment once."""
    global _default_config
    if _default_config is None:
        config = MessageConfig.from_env()
        config.validate()
        _default_config = config
    return _default_config


def set_default_config(config: Optional[MessageConfig]) -> None:
    """Replace the process-wide default. Pass None to reload from the environment."""
    global _default_config
    if config is not None:
        config.validate()
    _default_config = config


def configure_logging(config: Optional[MessageConfig] = None) -> None:
    """Configure logging based on config."""
    config = config or get_default_config()
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("httpmessage").setLevel(level)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Type-safe configuration with dataclass
# 2. Environment variable support
# 3. Validation at load time (fail-fast)
# 4. One logging setup shared by every module's getLogger(__name__)
# =============================================================================

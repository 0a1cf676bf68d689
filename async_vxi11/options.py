# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""Per-session options."""

from pydantic import BaseModel, ConfigDict, Field

from .constants import (
    DEFAULT_DEVICE,
    DEFAULT_IO_TIMEOUT_MS,
    DEFAULT_LOCK_TIMEOUT_MS,
    DEFAULT_TERM_CHAR,
    UINT32_MAX,
)


class VxiOptions(BaseModel):
    """Options read by every device call of a session."""

    model_config = ConfigDict(frozen=True)

    term_char: int | None = Field(
        DEFAULT_TERM_CHAR, ge=0, le=255, description="Read termination character, None to disable"
    )
    lock_timeout_ms: int = Field(
        DEFAULT_LOCK_TIMEOUT_MS, ge=0, le=UINT32_MAX, description="Time to wait for a device lock"
    )
    io_timeout_ms: int = Field(DEFAULT_IO_TIMEOUT_MS, ge=0, le=UINT32_MAX, description="Time allowed per I/O call")
    device: str = Field(DEFAULT_DEVICE, min_length=1, description="Device name passed to create_link")
    max_read_bytes: int | None = Field(None, ge=1, description="Bound on bytes accumulated by one read")

    @property
    def lock_timeout(self) -> float:
        """Lock timeout in seconds."""
        return self.lock_timeout_ms / 1000

    @property
    def io_timeout(self) -> float:
        """I/O timeout in seconds."""
        return self.io_timeout_ms / 1000

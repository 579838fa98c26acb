"""Retry policy value object."""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class RetryPolicy(BaseModel):
    """Immutable per-call retry settings. Delays are in seconds."""

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)
    jitter_factor: float = Field(default=0.1, ge=0)
    retryable_status_codes: frozenset[int] = DEFAULT_RETRYABLE_STATUS_CODES

    model_config = {'frozen': True}

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

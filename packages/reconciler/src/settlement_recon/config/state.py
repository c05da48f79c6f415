"""Persistence of the last-used run configuration.

Only the values a user would otherwise re-type are kept: the excluded
product, the exclusion customer ids and the report path. The Stripe key
is never written to disk.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from pydantic import BaseModel, Field, ValidationError

logger = structlog.get_logger(__name__)


class SavedState(BaseModel):
    """Values remembered from the previous run."""

    excluded_product_id: str | None = None
    exclusion_customer_ids: list[str] = Field(default_factory=list)
    report_path: str | None = None


def load_state(path: Path) -> SavedState:
    """Load saved state, returning empty defaults when absent or unreadable."""
    if not path.exists():
        return SavedState()
    try:
        return SavedState.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValidationError) as e:
        logger.warning("state_file_ignored", path=str(path), error=str(e))
        return SavedState()


def save_state(path: Path, state: SavedState) -> None:
    """Write state as JSON, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
    logger.debug("state_saved", path=str(path))

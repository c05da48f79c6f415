"""Configuration module for settlement reconciliation."""

from settlement_recon.config.logging import configure_logging, get_logger
from settlement_recon.config.settings import Settings, get_settings, split_ids
from settlement_recon.config.state import SavedState, load_state, save_state

__all__ = [
    "Settings",
    "get_settings",
    "split_ids",
    "configure_logging",
    "get_logger",
    "SavedState",
    "load_state",
    "save_state",
]

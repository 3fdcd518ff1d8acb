"""
Wizard progress as an explicit state record.

The four stages unlock in order: fetching assets enables the download,
a completed download enables the upload, and a completed upload enables
document migration and the language check. Transitions are pure; the
caller decides where the state is persisted.
"""

import json
from dataclasses import dataclass, asdict, replace
from pathlib import Path
from typing import Dict, Optional, Union

from logging_config import logger


@dataclass(frozen=True)
class WizardState:
    fetched: bool = False
    downloaded: bool = False
    uploaded: bool = False
    migrated: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, bool]]) -> "WizardState":
        data = data or {}
        return cls(**{key: bool(data.get(key, False)) for key in cls.__dataclass_fields__})

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


def mark_fetched(state: WizardState, already_downloaded: bool = False, already_uploaded: bool = False) -> WizardState:
    """Assets were listed; the idempotence checks may skip later stages."""
    return replace(
        state,
        fetched=True,
        downloaded=state.downloaded or already_downloaded,
        uploaded=state.uploaded or already_uploaded,
    )


def mark_downloaded(state: WizardState) -> WizardState:
    return replace(state, fetched=True, downloaded=True)


def mark_uploaded(state: WizardState) -> WizardState:
    return replace(state, fetched=True, downloaded=True, uploaded=True)


def mark_migrated(state: WizardState) -> WizardState:
    return replace(state, migrated=True)


def reset() -> WizardState:
    return WizardState()


def enabled_steps(state: WizardState) -> Dict[str, bool]:
    """Which wizard actions are currently available."""
    return {
        "fetchAssets": True,
        "downloadAssets": state.fetched,
        "uploadAssets": state.downloaded,
        "migrateDocuments": state.uploaded,
        "checkLanguages": state.uploaded,
    }


class JsonStateStore:
    """Persists WizardState to a JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> WizardState:
        if not self.path.exists():
            return WizardState()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return WizardState.from_dict(json.load(f))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Error loading saved state from {self.path}: {e}")
            return WizardState()

    def save(self, state: WizardState) -> WizardState:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)
        return state

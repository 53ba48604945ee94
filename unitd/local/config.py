import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import unitd.settings as default_settings

log = logging.getLogger(__name__)

_TRUE_STRINGS = ('true', '1', 't', 'yes', 'y', 'on')


class MergedSettings:
    """
    Attribute access to the unitd configuration.

    Precedence, lowest first:
    1. Defaults in `unitd/settings.py`.
    2. Environment variables and `.env` (read by settings.py at import).
    3. `overrides.json`, limited to the keys in `MODIFIABLE_SETTINGS`.
    """

    def __init__(self, overrides_path: Optional[Path] = None) -> None:
        self.OVERRIDES_JSON_PATH: Path = Path(overrides_path or default_settings.OVERRIDES_JSON_PATH)
        self.reload()

    def reload(self) -> None:
        """Re-reads the defaults and then the overrides file."""
        for key in dir(default_settings):
            if key.isupper() and key != "OVERRIDES_JSON_PATH":
                setattr(self, key, getattr(default_settings, key))
        self._load_overrides()

    def _coerce(self, key: str, value: Any) -> Any:
        """Converts an override to the type of the setting it replaces."""
        current = getattr(self, key)
        if isinstance(current, Path):
            return Path(value).expanduser()
        if isinstance(current, bool):
            return str(value).strip().lower() in _TRUE_STRINGS
        if current is None:
            return value
        return type(current)(value)

    def apply_overrides(self, overrides: Mapping[str, Any]) -> List[str]:
        """
        Applies modifiable overrides on top of the current values.

        Unknown or protected keys and values that cannot be converted are
        logged and skipped.

        :param overrides: Setting names mapped to their new values.
        :return list: The keys that were applied.
        """
        applied = []
        for key, value in overrides.items():
            if not key.isupper() or not hasattr(self, key):
                log.warning(f"Override setting '{key}' not found in default settings. Ignoring.")
                continue
            if key not in self.MODIFIABLE_SETTINGS:
                log.warning(f"Attempted to override non-modifiable setting '{key}'. Ignoring.")
                continue
            try:
                setattr(self, key, self._coerce(key, value))
            except (ValueError, TypeError) as e:
                log.warning(f"Could not convert override '{key}'='{value}': {e}. Ignoring.")
                continue
            applied.append(key)
            log.debug(f"Overridden setting: {key} = {getattr(self, key)}")
        return applied

    def _load_overrides(self) -> None:
        if not self.OVERRIDES_JSON_PATH.exists():
            return
        try:
            with self.OVERRIDES_JSON_PATH.open('r') as f:
                overrides = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            log.error(f"Failed to load or parse overrides file '{self.OVERRIDES_JSON_PATH}': {e}")
            return
        if not isinstance(overrides, dict):
            log.error(f"Overrides file '{self.OVERRIDES_JSON_PATH}' must contain a JSON object. Ignoring.")
            return

        log.debug(f"Loading configuration overrides from {self.OVERRIDES_JSON_PATH}")
        self.apply_overrides(overrides)

    def save_overrides(self, overrides_to_save: Dict[str, Any]) -> None:
        """
        Persists modifiable settings to `overrides.json` and applies them.

        :param overrides_to_save: Setting names mapped to their new values.
        """
        persisted = {
            key: str(value) if isinstance(value, Path) else value
            for key, value in overrides_to_save.items()
            if key in self.MODIFIABLE_SETTINGS
        }
        if not persisted:
            log.warning("No modifiable settings provided to save.")
            return

        self.OVERRIDES_JSON_PATH.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.OVERRIDES_JSON_PATH.with_suffix(".tmp")
        try:
            with temp_path.open('w') as f:
                json.dump(persisted, f, indent=4)
            temp_path.replace(self.OVERRIDES_JSON_PATH)
        finally:
            temp_path.unlink(missing_ok=True)
        self.apply_overrides(persisted)
        log.info(f"Configuration overrides saved to {self.OVERRIDES_JSON_PATH}")


# Create a singleton instance to be imported by other modules
effective_settings = MergedSettings()

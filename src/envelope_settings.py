# Envelope configuration points and per-partner overrides.
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EnvelopeSettings(BaseModel):
    """Delimiters and fixed envelope values used when building or scanning X12."""
    element_separator: str = Field("*", min_length=1, max_length=1)
    segment_terminator: str = Field("~", min_length=1, max_length=1)
    component_separator: str = Field(">", min_length=1, max_length=1)
    line_break: str = "\n"
    id_qualifier: str = "ZZ"
    standards_id: str = "U"
    interchange_version: str = "00401"
    group_version: str = "004010"
    responsible_agency: str = "X"
    test_indicator: str = Field("P", pattern="^[PT]$")
    ack_requested: str = Field("0", pattern="^[01]$")
    default_uom: str = Field("EA", min_length=2, max_length=2)


DEFAULT_SETTINGS = EnvelopeSettings()


class PartnerSettingsManager:
    """
    Loads envelope settings from a directory of JSON files.

    Layout:
        <base>/default.json             - overrides applied to every partner
        <base>/partners/<partner>.json  - overrides for one trading partner

    Partner files are merged over the defaults. Missing or malformed files fall
    back to the defaults.
    """

    def __init__(self, settings_base_path: str = "settings"):
        self.settings_base_path = Path(settings_base_path)
        self._defaults: EnvelopeSettings = DEFAULT_SETTINGS
        self._partner_cache: Dict[str, EnvelopeSettings] = {}
        self._load_defaults()

    def _read_json(self, path: Path) -> Optional[dict]:
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except Exception as e:
            logger.error(f"Failed to load settings {path}: {e}")
            return None

    def _load_defaults(self):
        if not self.settings_base_path.exists():
            logger.warning(f"Settings base path does not exist: {self.settings_base_path}")
            return

        default_path = self.settings_base_path / "default.json"
        if not default_path.exists():
            logger.info(f"No default.json in {self.settings_base_path}, using built-in envelope settings")
            return

        data = self._read_json(default_path)
        if data is None:
            return
        try:
            self._defaults = EnvelopeSettings.model_validate(data)
            logger.info(f"Loaded default envelope settings from {default_path}")
        except Exception as e:
            logger.error(f"Invalid default envelope settings in {default_path}: {e}")

    @property
    def defaults(self) -> EnvelopeSettings:
        return self._defaults

    def get_settings(self, partner_id: Optional[str] = None) -> EnvelopeSettings:
        """
        Get settings for a trading partner. Checks the partner cache first, then a
        partner-specific file, and falls back to the defaults.
        """
        if not partner_id:
            return self._defaults

        partner_key = partner_id.strip()
        if partner_key in self._partner_cache:
            return self._partner_cache[partner_key]

        partner_path = self.settings_base_path / "partners" / f"{partner_key}.json"
        if partner_path.exists():
            data = self._read_json(partner_path)
            if data is not None:
                try:
                    merged = {**self._defaults.model_dump(), **data}
                    settings = EnvelopeSettings.model_validate(merged)
                    self._partner_cache[partner_key] = settings
                    logger.info(f"Loaded partner envelope settings: {partner_key}")
                    return settings
                except Exception as e:
                    logger.error(f"Invalid partner settings {partner_path}: {e}")

        logger.debug(f"Using default envelope settings for partner {partner_key}")
        return self._defaults

    def reload(self):
        """Reload all settings from the filesystem."""
        self._defaults = DEFAULT_SETTINGS
        self._partner_cache.clear()
        self._load_defaults()

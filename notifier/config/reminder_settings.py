"""
Appointment reminder settings persisted as a small JSON file.

The file is shared with the desktop shell, so keys keep their camelCase
names on disk.
"""

import json
import logging
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

ReminderType = Literal["1day", "2days", "custom"]


class ReminderSettings(BaseModel):
    """Reminder window configuration."""
    reminder_type: ReminderType = Field("1day", alias="reminderType")
    custom_hours: float = Field(24, gt=0, alias="customHours")
    enabled: bool = True
    
    class Config:
        populate_by_name = True
    
    @property
    def window_hours(self) -> Optional[float]:
        """Hours before an appointment when reminders open, None when disabled."""
        if not self.enabled:
            return None
        if self.reminder_type == "2days":
            return 48
        if self.reminder_type == "custom":
            return self.custom_hours
        return 24


class ReminderSettingsStore:
    """Reads and writes ``ReminderSettings`` from a JSON file."""
    
    def __init__(self, path: str):
        self.path = Path(path)
    
    def load(self) -> ReminderSettings:
        """Load settings, falling back to defaults when missing or invalid."""
        if not self.path.exists():
            return ReminderSettings()
        
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Error reading reminder settings from {self.path}: {e}")
            return ReminderSettings()
        
        if not isinstance(raw, dict):
            logger.error(f"Reminder settings in {self.path} are not a JSON object")
            return ReminderSettings()
        
        return ReminderSettings.model_validate(self._valid_values(raw))
    
    def _valid_values(self, raw: dict) -> dict:
        # Each key is checked on its own so one bad value cannot reset the others
        values = {}
        for name, field in ReminderSettings.model_fields.items():
            key = field.alias or name
            if key not in raw:
                continue
            try:
                ReminderSettings.model_validate({key: raw[key]})
            except ValidationError:
                logger.warning(f"Ignoring invalid reminder setting {key}={raw[key]!r} in {self.path}")
                continue
            values[key] = raw[key]
        return values
    
    def save(self, settings: ReminderSettings) -> None:
        """Persist settings to disk."""
        self.path.write_text(
            json.dumps(settings.model_dump(by_alias=True), indent=2),
            encoding="utf-8",
        )
        logger.info(f"Saved reminder settings: {settings.model_dump()}")

"""Setting API schemas."""

from pydantic import BaseModel


class SettingRead(BaseModel):
    """Stored value for one key; `value` is None when nothing is saved."""

    key: str
    value: str | None = None


class SettingUpdate(BaseModel):
    """Payload for saving a setting."""

    value: str

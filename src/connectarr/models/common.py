"""Common models shared between Radarr and Sonarr."""

from pydantic import BaseModel, ConfigDict, Field


class SystemStatus(BaseModel):
    """Identity information returned by ``/api/v3/system/status``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    app_name: str = Field(alias="appName")
    instance_name: str | None = Field(default=None, alias="instanceName")
    version: str | None = None


class Quality(BaseModel):
    """Quality information for a release."""

    id: int = 0
    name: str = "Unknown"


class Language(BaseModel):
    """A language detected for a release."""

    id: int = 0
    name: str = ""


class Release(BaseModel):
    """A release from an indexer search result.

    Parsed from the raw release resource; derived display values live in
    :mod:`connectarr.releases`.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    guid: str
    indexer_id: int = Field(default=0, alias="indexerId")
    title: str
    indexer: str = "Unknown"
    size: int = 0
    quality: Quality = Field(default_factory=Quality)
    languages: list[Language] = Field(default_factory=list)
    protocol: str = "unknown"
    seeders: int | None = None
    leechers: int | None = None
    age: int = 0
    age_hours: float = Field(default=0.0, alias="ageHours")
    age_minutes: float = Field(default=0.0, alias="ageMinutes")
    rejected: bool = False
    rejections: list[str] = Field(default_factory=list)
    indexer_flags: list[str] = Field(default_factory=list, alias="indexerFlags")
    info_url: str | None = Field(default=None, alias="infoUrl")

    @property
    def is_torrent(self) -> bool:
        return self.protocol == "torrent"

    @classmethod
    def from_api(cls, item: dict) -> "Release":
        """Build a release from an API record.

        The API nests quality as ``{"quality": {"quality": {...}}}`` and
        sometimes sends ``indexerFlags`` as a bitmask instead of names.
        """
        data = {key: value for key, value in item.items() if value is not None}
        quality_data = data.get("quality") or {}
        data["quality"] = quality_data.get("quality", {}) if isinstance(quality_data, dict) else {}
        flags = data.get("indexerFlags")
        if not isinstance(flags, list):
            data["indexerFlags"] = []
        data["languages"] = [lang for lang in data.get("languages") or [] if lang]
        data["rejections"] = list(data.get("rejections") or [])
        return cls.model_validate(data)

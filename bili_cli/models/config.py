"""
Pydantic model for client configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ClientConfig(BaseModel):
    """A validated configuration model for the API client."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Login cookies (SESSDATA, bili_jct, DedeUserID, ...). Empty = anonymous.
    cookies: dict[str, str] = Field(default_factory=dict)

    # Network Settings
    timeout_total: float = 30.0
    timeout_connect: float = 10.0
    max_connections: int = 16
    max_concurrent_pages: int = 8
    # Blank keeps the built-in desktop browser UA.
    user_agent: str = ""

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    @field_validator("cookies")
    @classmethod
    def validate_cookies(cls, v: dict[str, str]) -> dict[str, str]:
        """Drops entries with blank names or values."""
        return {
            name.strip(): value.strip()
            for name, value in v.items()
            if name and name.strip() and value and value.strip()
        }

    @field_validator("max_concurrent_pages")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Ensures a reasonable number of concurrent page requests."""
        if v < 1 or v > 32:
            raise ValueError("Max concurrent pages must be between 1 and 32.")
        return v

    @field_validator("max_connections")
    @classmethod
    def validate_connections(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Max connections must be at least 1.")
        return v

    @model_validator(mode="after")
    def validate_timeouts(self) -> "ClientConfig":
        """Checks that the timeouts are positive and consistent."""
        if self.timeout_total <= 0 or self.timeout_connect <= 0:
            raise ValueError("Timeouts must be positive.")
        if self.timeout_connect > self.timeout_total:
            raise ValueError("Connect timeout cannot exceed the total timeout.")
        return self

    @property
    def is_authenticated(self) -> bool:
        return bool(self.cookies)

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path", "cookies"}
        return {key for key in cls.model_fields if key not in internal_fields} | {
            "cookie"
        }

"""Configuration for the GitHub REST client."""

from pydantic import BaseModel, SecretStr, field_validator


class GitHubConfig(BaseModel):
    """Configuration for the GitHub REST client.

    ``api_base_url`` may carry a path, as on GitHub Enterprise Server
    (``https://HOST/api/v3``). Request paths are relative to it.
    """

    token: SecretStr
    api_base_url: str = "https://api.github.com/"

    @field_validator("api_base_url")
    @classmethod
    def _ensure_trailing_slash(cls, value: str) -> str:
        return value if value.endswith("/") else f"{value}/"

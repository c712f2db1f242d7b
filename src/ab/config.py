"""Assignment settings with environment variable support.

Build one `AssignmentSettings` at process start and pass it to the engine.
Every field can be overridden with an `AB_`-prefixed environment variable
(e.g. AB_COOKIE_NAME=exp_v2) or a `.env` file.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AssignmentSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AB_", env_file=".env", extra="ignore",
        populate_by_name=True,
    )

    # Local catalog (JSON array of experiment records) used by the web app
    experiments_file: str = ""
    # Remote catalog URL; empty disables the remote fetch
    external_experiments_src: str = ""
    cookie_name: str = "exp"
    cookie_domain: str = ""
    # Default cookie lifetime: one week
    max_age: int = 60 * 60 * 24 * 7
    # Prefer the caller's HTTP session when fetching client-side
    use_fetch: bool = False
    fetch_timeout: float = 5.0

    # Where a relative catalog URL points when resolved on the server
    api_host: str = Field(
        default="localhost",
        validation_alias=AliasChoices("AB_API_HOST", "API_HOST", "HOST"),
    )
    api_port: int = Field(
        default=3000,
        validation_alias=AliasChoices("AB_API_PORT", "API_PORT", "PORT"),
    )

    @property
    def api_base_url(self) -> str:
        host = "localhost" if self.api_host == "0.0.0.0" else self.api_host
        return f"http://{host}:{self.api_port}"

# chatops/config.py
"""Application configuration using pydantic-settings.

Provides a centralized Settings class for all environment variables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are loaded from .env file and environment variables.
    Environment variables take precedence over .env file values.
    """

    # Slack Integration
    slack_bot_token: str = ""
    slack_app_token: str = ""
    slack_debug: bool = False
    slack_slash_command: str = "/chatops"
    slack_timeout: int = 30

    # Status markers (emoji names, without colons)
    slack_reaction_doing: str = "eyes"
    slack_reaction_done: str = "white_check_mark"
    slack_reaction_failed: str = "x"
    slack_reaction_dialog: str = "speech_balloon"

    # Command routing
    slack_default_command: str = ""
    slack_help_command: str = "help"
    # Ordered rules: group_regex=command_regex[,group_regex=command_regex...]
    slack_permissions: str = ""

    # Reply rendering
    slack_public_channel: str = ""  # Where image attachments are uploaded
    slack_attachment_color: str = "#555555"
    slack_error_color: str = "#ff0000"

    # Comma-separated modules that register processors on import
    processor_modules: str = ""

    # Logging / Observability
    log_format: str = "text"  # "text" or "json"
    log_level: str = "INFO"
    logfire_token: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
        case_sensitive=False,  # Allow case-insensitive env var names
    )

    @property
    def processor_module_list(self) -> list[str]:
        """Get the configured processor modules as a list.

        Returns:
            Module paths with surrounding whitespace and empty items removed.
        """
        return [m.strip() for m in self.processor_modules.split(",") if m.strip()]


# Singleton instance - import this in your code
settings = Settings()

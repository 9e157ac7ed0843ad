"""Configuration management for the snack bot."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_FORM_URL = (
    "https://docs.google.com/forms/d/e/"
    "1FAIpQLScHdUb9m5eooqH5OJGvGpyE4eSsN3ao9WSQHCqXZ6I2OX6bLA/viewform?usp=header"
)


class Settings(BaseSettings):
    """Application settings with environment variable support."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # Browser discovery overrides
    browser_path: Optional[str] = Field(None, description="Absolute path to a browser executable")
    user_data_dir: Optional[str] = Field(None, description="Absolute path to a browser profile directory")
    
    # Target form
    form_url: str = Field(DEFAULT_FORM_URL, description="Form to open and submit")
    target_checkbox_label: str = Field("opt", description="Visible label of the checkbox to tick")
    identity_domain: str = Field("@w3villa.com", description="Required organizational email suffix")
    
    # Browser Configuration
    browser_headless: bool = Field(False, description="Run the system browser headless")
    allow_bundled_fallback: bool = Field(
        False, description="Use Playwright's bundled Chromium when no local browser/profile resolves"
    )
    
    # Timing (seconds)
    navigation_timeout: float = Field(60.0, description="Form navigation timeout")
    poll_ceiling: float = Field(600.0, description="Maximum wait for login and form readiness")
    poll_interval: float = Field(1.0, description="Delay between poll iterations")
    identity_probe_timeout: float = Field(2.0, description="Wait for the account menu per poll")
    form_probe_timeout: float = Field(0.5, description="Wait for the form element per poll")
    interaction_timeout: float = Field(20.0, description="Wait for checkbox and submit controls")
    form_settle_delay: float = Field(2.0, description="Pause after the form appears")
    submit_settle_delay: float = Field(1.0, description="Pause before clicking submit")
    post_submit_delay: float = Field(3.0, description="Pause after clicking submit")
    
    # Triggers
    schedule_cron: str = Field("0 16 * * 1-5", description="When the scheduled run fires")
    schedule_enabled: bool = Field(False, description="Start the scheduler alongside the API")
    run_timeout: Optional[float] = Field(
        None, description="Bound on an HTTP or scheduled run; None waits indefinitely"
    )
    
    # Server Configuration
    host: str = Field("0.0.0.0", description="Server host")
    port: int = Field(3000, description="Server port")
    reload: bool = Field(False, description="Enable auto-reload")
    
    # Application Configuration
    debug: bool = Field(False, description="Enable debug mode")
    log_level: str = Field("INFO", description="Logging level")


# Global settings instance
settings = Settings()

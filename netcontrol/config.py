from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    netctl_host: str = "0.0.0.0"
    netctl_port: int = 3001

    # Logging
    netctl_log_level: str = "info"

    # CORS
    netctl_cors_origins: str = "*"

    # Shared secret gate (None = disabled)
    netctl_access_key: str | None = None

    # Command execution
    netctl_use_sudo: bool = False
    netctl_command_timeout: float = 30.0
    netctl_ping_timeout_seconds: int = 2

    # Verify-with-retry timings (seconds)
    netctl_settle_delay: float = 2.0
    netctl_enable_settle_delay: float = 3.0
    netctl_reactivate_pause: float = 1.0
    netctl_retry_backoff: float = 5.0
    netctl_max_verify_attempts: int = 3

    # WiFi
    netctl_radio_wait: float = 3.0
    netctl_scan_wait: float = 2.0
    netctl_wifi_client_interface: str = "wlan0"

    # Hotspot defaults
    netctl_hotspot_interface: str = "wlp3s0"
    netctl_hotspot_profile_name: str = "hotspot"
    netctl_hotspot_ssid: str = "Netctl-Hotspot"
    netctl_hotspot_security: str = "wpa2"
    netctl_hotspot_channel: int = 6

    # Time sync
    netctl_timesyncd_conf_path: str = "/etc/systemd/timesyncd.conf"
    netctl_timesyncd_unit: str = "systemd-timesyncd"

    model_config = {"env_prefix": "", "case_sensitive": False, "env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()

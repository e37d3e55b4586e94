"""Configuration loading and saving.

Config file location: ~/.config/bsky-crosspost/config.toml

Schema:
    [bluesky]
    pds_domain = "pds.example.com"
    handle = "alice.pds.example.com"
    password = "..."
    did = "did:plc:..."

    [admin]
    password = "..."  # PDS admin password, only needed for create-account

    [limits]
    char_budget = 300
    image_limit = 4
    max_image_bytes = 1000000
    max_video_bytes = 50000000

    [state]
    state_dir = ".state"
"""

import os
import tomllib
from dataclasses import dataclass, field, replace
from datetime import timedelta
from pathlib import Path

import tomli_w

from .errors import ConfigError
from .models import Credentials

CONFIG_DIR = Path.home() / ".config" / "bsky-crosspost"
CONFIG_FILE = CONFIG_DIR / "config.toml"


@dataclass(frozen=True)
class CrosspostLimits:
    """Protocol limits the record pipeline enforces."""

    char_budget: int = 300
    display_name_budget: int = 64
    description_budget: int = 256
    image_limit: int = 4
    image_types: frozenset[str] = frozenset(
        {"image/jpeg", "image/png", "image/webp", "image/gif"}
    )
    video_types: frozenset[str] = frozenset({"video/mp4"})
    profile_image_types: frozenset[str] = frozenset({"image/jpeg", "image/png"})
    max_image_bytes: int = 1_000_000
    max_video_bytes: int = 50_000_000
    profile_image_window: timedelta = timedelta(hours=1)


@dataclass
class AppConfig:
    pds_domain: str
    credentials: Credentials
    admin_password: str | None = None
    limits: CrosspostLimits = field(default_factory=CrosspostLimits)
    state_dir: Path = Path(".state")


def load_config(config_path: Path = CONFIG_FILE) -> AppConfig:
    """Load and validate config from TOML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    bluesky = data.get("bluesky", {})
    pds_domain = bluesky.get("pds_domain", "")
    if not pds_domain:
        raise ConfigError("Config missing required bluesky.pds_domain")

    limits_data = data.get("limits", {})
    try:
        limits = replace(
            CrosspostLimits(),
            **{
                key: int(limits_data[key])
                for key in (
                    "char_budget",
                    "image_limit",
                    "max_image_bytes",
                    "max_video_bytes",
                )
                if key in limits_data
            },
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid [limits] section: {e}") from e

    return AppConfig(
        pds_domain=pds_domain,
        credentials=Credentials(
            handle=bluesky.get("handle", ""),
            password=bluesky.get("password", ""),
            did=bluesky.get("did") or None,
        ),
        admin_password=data.get("admin", {}).get("password") or None,
        limits=limits,
        state_dir=Path(data.get("state", {}).get("state_dir", ".state")),
    )


def save_config(config: AppConfig, config_path: Path = CONFIG_FILE) -> None:
    """Write config to TOML file with restricted permissions."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    bluesky = {
        "pds_domain": config.pds_domain,
        "handle": config.credentials.handle,
        "password": config.credentials.password,
    }
    if config.credentials.did:
        bluesky["did"] = config.credentials.did

    data: dict = {
        "bluesky": bluesky,
        "limits": {
            "char_budget": config.limits.char_budget,
            "image_limit": config.limits.image_limit,
            "max_image_bytes": config.limits.max_image_bytes,
            "max_video_bytes": config.limits.max_video_bytes,
        },
        "state": {"state_dir": str(config.state_dir)},
    }
    if config.admin_password:
        data["admin"] = {"password": config.admin_password}

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)

    # File contains account secrets
    os.chmod(config_path, 0o600)


def config_exists(config_path: Path = CONFIG_FILE) -> bool:
    """Check if config file exists."""
    return config_path.exists()

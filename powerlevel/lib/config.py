"""
Configuration loader for Powerlevel.

Reads .github-tracker.json or .opencode/config.json from the repository,
merges it over defaults and validates it against the config schema.
If no config file exists, returns defaults.
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from powerlevel.lib.errors import ValidationError
from powerlevel.lib import validate

logger = logging.getLogger(__name__)


# Searched in order, first existing file wins
CONFIG_FILENAMES = [
    ".github-tracker.json",
    ".opencode/config.json",
]

DEFAULT_CONFIG = {
    "tracking": {
        "autoUpdateEpics": True,
        "updateOnTaskComplete": True,
        "commentOnProgress": False,
    },
    "superpowersIntegration": {
        "enabled": True,
        "trackSkillUsage": True,
        "updateEpicOnSkillInvocation": True,
    },
}


@dataclass
class TrackingConfig:
    """Epic tracking flags from the `tracking` section."""
    auto_update_epics: bool = True
    update_on_task_complete: bool = True
    comment_on_progress: bool = False


@dataclass
class IntegrationConfig:
    """Skill detection flags from the `superpowersIntegration` section."""
    enabled: bool = True
    track_skill_usage: bool = True
    update_epic_on_skill_invocation: bool = True


@dataclass
class Config:
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    integration: IntegrationConfig = field(default_factory=IntegrationConfig)
    source: Path | None = None  # File the config was loaded from, None for defaults


def merge_config(target: dict, source: dict | None) -> dict:
    """Deep-merge source over target. Nested dicts merge, everything else overwrites."""
    result = copy.deepcopy(target)
    if not isinstance(source, dict):
        return result

    for key, value in source.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = value
    return result


def find_config_file(repo_path: Path) -> Path | None:
    """Return the first config file present in repo_path, or None."""
    for name in CONFIG_FILENAMES:
        path = repo_path / name
        if path.exists():
            return path
    return None


def config_from_dict(data: dict, source: Path | None = None) -> Config:
    """Build a Config from an already merged and validated dict."""
    tracking = data.get("tracking", {})
    integration = data.get("superpowersIntegration", {})
    return Config(
        tracking=TrackingConfig(
            auto_update_epics=tracking.get("autoUpdateEpics", True),
            update_on_task_complete=tracking.get("updateOnTaskComplete", True),
            comment_on_progress=tracking.get("commentOnProgress", False),
        ),
        integration=IntegrationConfig(
            enabled=integration.get("enabled", True),
            track_skill_usage=integration.get("trackSkillUsage", True),
            update_epic_on_skill_invocation=integration.get("updateEpicOnSkillInvocation", True),
        ),
        source=source,
    )


def load_config(repo_path: Path) -> Config:
    """Load config for a repository.

    Missing file returns defaults. A file that exists but can't be parsed
    or doesn't match the schema raises ValidationError.
    """
    config_path = find_config_file(repo_path)
    if config_path is None:
        return config_from_dict(DEFAULT_CONFIG)

    text = config_path.read_text()
    user_config = None
    if text.strip():
        try:
            user_config = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid config file {config_path}: {e}") from None

    if user_config is not None and not isinstance(user_config, dict):
        raise ValidationError(f"Config file {config_path} must contain an object")

    merged = merge_config(DEFAULT_CONFIG, user_config)
    validate.validate(merged, "config")

    logger.debug(f"Loaded config from {config_path}")
    return config_from_dict(merged, source=config_path)

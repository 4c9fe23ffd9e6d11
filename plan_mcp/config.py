"""Configuration loader for the project plan server."""

import yaml
import logging
from pathlib import Path
from dataclasses import dataclass, field

from .security import SecurityPolicy

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(".plan") / "config.yaml"


@dataclass
class PlanConfig:
    """Configuration for the managed project plan directory."""
    directory: str = "project_plan"
    project_name: str = "Project Plan"
    security: SecurityPolicy = field(default_factory=SecurityPolicy)


def _load_policy(data: dict) -> SecurityPolicy:
    defaults = SecurityPolicy()
    extensions = data.get("allowed_extensions", defaults.allowed_extensions)
    return SecurityPolicy(
        max_file_size=int(data.get("max_file_size", defaults.max_file_size)),
        max_content_length=int(data.get("max_content_length", defaults.max_content_length)),
        allowed_extensions=tuple(extensions),
        max_filename_length=int(data.get("max_filename_length", defaults.max_filename_length)),
    )


def load_config(project_root: Path) -> PlanConfig:
    """Load configuration from .plan/config.yaml.

    Args:
        project_root: Project root directory

    Returns:
        PlanConfig object (with defaults if file missing or invalid)
    """
    config_file = Path(project_root) / CONFIG_PATH

    if not config_file.exists():
        return PlanConfig()

    try:
        content = yaml.safe_load(config_file.read_text())
        if not content:
            return PlanConfig()

        if "project_plan" not in content:
            logger.debug(f"Config file {config_file} found but 'project_plan' section missing")
            return PlanConfig()

        section = content["project_plan"] or {}
        directory = section.get("directory", "project_plan")
        project_name = section.get("project_name", "Project Plan")
        if not isinstance(directory, str) or not directory:
            raise ValueError(f"directory must be a non-empty string, got {directory!r}")
        if not isinstance(project_name, str):
            raise ValueError(f"project_name must be a string, got {project_name!r}")

        return PlanConfig(
            directory=directory,
            project_name=project_name,
            security=_load_policy(section.get("security") or {}),
        )
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse config file {config_file}: {e}. Using defaults.")
        return PlanConfig()
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(f"Invalid config in {config_file}: {e}. Using defaults.")
        return PlanConfig()

"""Active project context for the project plan server."""

import os
import re
from pathlib import Path

from .config import PlanConfig, load_config
from .files import FileManager
from .models import LIST_FILTERS, RECORD_CATEGORIES
from .templates import TemplateGenerator

ROOT_ENV_VAR = "PROJECT_PLAN_ROOT"


class PlanContext:
    """Manages the active project root and the collaborators wired to it."""

    def __init__(self):
        self._root: Path | None = None
        self._config: PlanConfig | None = None
        self._files: FileManager | None = None
        self._templates: TemplateGenerator | None = None

    @property
    def root(self) -> Path | None:
        return self._root

    @property
    def is_set(self) -> bool:
        return self._files is not None

    @property
    def config(self) -> PlanConfig:
        return self._config or PlanConfig()

    def set_project(self, project_path: str | Path) -> FileManager:
        """Validate and set the active project root.

        Args:
            project_path: Path to project root directory

        Returns:
            FileManager for the project's plan directory

        Raises:
            ValueError: If the root does not exist
        """
        root = Path(project_path).expanduser().resolve()

        if not root.is_dir():
            raise ValueError(f"Project root does not exist: {root}")

        self._root = root
        self._config = load_config(root)
        self._files = FileManager(
            root,
            directory=self._config.directory,
            policy=self._config.security,
        )
        self._templates = TemplateGenerator()
        return self._files

    def require_files(self) -> FileManager:
        """Get the file manager, defaulting the root from the environment."""
        if not self._files:
            self.set_project(os.environ.get(ROOT_ENV_VAR) or Path.cwd())
        return self._files

    def require_templates(self) -> TemplateGenerator:
        self.require_files()
        return self._templates

    def clear(self):
        """Clear the current project context."""
        self._root = None
        self._config = None
        self._files = None
        self._templates = None


def validate_sprint_id(sprint_id: str) -> bool:
    """Validate sprint id format (M##_S##)."""
    return isinstance(sprint_id, str) and bool(re.fullmatch(r"M\d{2}_S\d{2}", sprint_id))


def validate_list_filter(category: str) -> bool:
    return category in LIST_FILTERS


def validate_record_category(category: str) -> bool:
    return category in RECORD_CATEGORIES

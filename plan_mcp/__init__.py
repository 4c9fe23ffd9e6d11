"""Project plan documents served over MCP."""

from .models import DocumentRecord, ProjectStatus
from .security import SecurityPolicy, SecurityValidator, SecurityValidationError
from .files import FileManager, DocumentNotAccessibleError, categorize_file, slugify
from .templates import TemplateGenerator

__all__ = [
    "DocumentRecord",
    "ProjectStatus",
    "SecurityPolicy",
    "SecurityValidator",
    "SecurityValidationError",
    "FileManager",
    "DocumentNotAccessibleError",
    "categorize_file",
    "slugify",
    "TemplateGenerator",
]

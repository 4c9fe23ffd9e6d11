"""File management for the project plan directory.

Every path-accepting operation goes through SecurityValidator before any
disk I/O. Nothing is cached: listings, reads and status are always computed
from the current state of the directory.
"""

import logging
import os
import re
import shutil
import tempfile
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path

from .models import (
    CATEGORIES,
    RECORD_CATEGORIES,
    Category,
    DocumentRecord,
    ProjectStatus,
    RecordCategory,
)
from .security import SecurityPolicy, SecurityValidator

logger = logging.getLogger(__name__)


DEFAULT_DIRECTORY = "project_plan"
CORE_DOCUMENTS = ("PLAN.md", "CURRENT.md")

# First match wins; anything unmatched is treated as "doc"
NAMING_PATTERNS: tuple[tuple[str, re.Pattern], ...] = (
    ("sprint", re.compile(r"^M\d{2}_S\d{2}\..+\.md$")),
    ("doc", re.compile(r"^DOCREF_\d{3}\..+\.md$")),
    ("code", re.compile(r"^CODEREF_.+\.md$")),
    ("opinion", re.compile(r"^OPINIONS_\d{3}\..+\.md$")),
    ("core", re.compile(r"^(PLAN|CURRENT)\.md$")),
)
FALLBACK_CATEGORY = "doc"

RECORD_PREFIXES = {
    "doc": "DOCREF_",
    "code": "CODEREF_",
    "opinion": "OPINIONS_",
}
SEQUENCE_PATTERNS = {
    "doc": re.compile(r"^DOCREF_(\d{3})\."),
    "opinion": re.compile(r"^OPINIONS_(\d{3})\."),
}


class DocumentNotAccessibleError(FileNotFoundError):
    """Raised when a validated path does not name a readable file."""


def categorize_file(file_name: str) -> Category:
    """Derive a document category from its file name."""
    for category, pattern in NAMING_PATTERNS:
        if pattern.match(file_name):
            return category
    return FALLBACK_CATEGORY


def _read_text(path: Path) -> str:
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def slugify(text: str) -> str:
    """Normalize free text into a filesystem-safe slug."""
    slug = text.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "_", slug)
    slug = re.sub(r"_+", "_", slug)
    return slug.strip("_")


class FileManager:
    """Owns all I/O against the managed project plan directory.

    Attributes:
        root: Absolute path of the managed directory
        validator: SecurityValidator rooted at ``root``
    """

    def __init__(
        self,
        base_path: Path,
        directory: str = DEFAULT_DIRECTORY,
        policy: SecurityPolicy | None = None,
        log: logging.Logger | None = None,
    ):
        self.root = (Path(base_path) / directory).resolve()
        self.log = log or logger
        self.validator = SecurityValidator(self.root, policy=policy, log=self.log)

    def ensure_directory(self) -> None:
        """Create the managed directory (and parents) if missing."""
        if not self.root.is_dir():
            self.root.mkdir(parents=True, exist_ok=True)
            self.log.info(f"Created project plan directory: {self.root}")

    def get_root(self) -> Path:
        return self.root

    def file_exists(self, path: Path | str) -> bool:
        return Path(path).exists()

    def has_core_documents(self) -> bool:
        """Return True if both PLAN.md and CURRENT.md exist."""
        return all(self.file_exists(self.root / name) for name in CORE_DOCUMENTS)

    def list_documents(self, category: str = "all") -> list[DocumentRecord]:
        """List markdown documents, optionally filtered by category.

        A file that cannot be read is logged and skipped.

        Args:
            category: One of the document categories, or "all"

        Returns:
            Records ordered by category rank, then by name
        """
        self.ensure_directory()

        records = []
        for name in os.listdir(self.root):
            if not name.endswith(".md"):
                continue

            file_category = categorize_file(name)
            if category != "all" and file_category != category:
                continue

            path = self.root / name
            if not self._inside_root(path):
                self.log.warning(f"Skipping {name}: resolves outside the project plan directory")
                continue

            try:
                stats = path.stat()
                content = _read_text(path)
            except (OSError, UnicodeDecodeError) as e:
                self.log.warning(f"Failed to read file {name}: {e}")
                continue

            records.append(DocumentRecord(
                name=name,
                path=path,
                category=file_category,
                line_count=len(content.split("\n")),
                byte_size=stats.st_size,
                last_modified=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
            ))

        return sorted(records, key=lambda r: r.sort_key)

    def get_status(self) -> ProjectStatus:
        """Summarize the managed directory."""
        has_core = self.has_core_documents()
        records = self.list_documents("all")

        counts = {category: 0 for category in CATEGORIES}
        for record in records:
            counts[record.category] = counts.get(record.category, 0) + 1
        counts["all"] = len(records)

        if records:
            last_updated = max(r.last_modified for r in records)
        else:
            last_updated = datetime.now(timezone.utc)

        return ProjectStatus(
            has_core=has_core,
            total_count=len(records),
            counts_by_category=counts,
            last_updated=last_updated,
        )

    def read_document(self, path: str) -> str:
        """Read a document, validating both its path and its content.

        Args:
            path: File name (or path) inside the managed directory

        Returns:
            The file's text

        Raises:
            SecurityValidationError: If the path or stored content is rejected
            DocumentNotAccessibleError: If the file cannot be read
        """
        target = self.validator.validate_path(str(path))

        if not target.is_file() or not os.access(target, os.R_OK):
            raise DocumentNotAccessibleError(f"File not accessible: {target.name}")

        try:
            content = _read_text(target)
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentNotAccessibleError(f"File not accessible: {target.name} ({e})") from e

        self.validator.validate_content(content, context=target.name)
        self.validator.validate_size(len(content.encode("utf-8")), context=target.name)
        return content

    def write_document(self, name: str, content: str) -> Path:
        """Write a document, restoring the previous version on failure.

        An existing file is first copied to a uniquely named backup sibling.
        On success the backup is removed; on failure it is renamed back into
        place and the original error is re-raised.

        Returns:
            Absolute path of the written document
        """
        self.ensure_directory()
        target = self.validator.validate_operation(name, content, context=name)

        if target.parent != self.root:
            raise PermissionError(
                "Access denied: Can only write files directly inside the project plan directory"
            )

        backup = self._create_backup(target) if target.exists() else None

        try:
            self._write_text(target, content)
        except Exception:
            if backup is not None:
                self._restore_backup(backup, target)
            raise

        if backup is not None:
            backup.unlink(missing_ok=True)
            self.log.debug(f"Removed backup {backup.name}")

        self.log.info(f"Wrote {target.name} ({len(content)} chars)")
        return target

    def generate_name(self, category: RecordCategory, target: str) -> str:
        """Generate the next file name for a recorded document.

        doc and opinion names carry a three digit sequence number computed as
        max(existing) + 1. code names carry no number, so the same target
        always maps to the same file.

        Raises:
            ValueError: If the category is not recordable or the target has
                no usable characters
        """
        if category not in RECORD_CATEGORIES:
            raise ValueError(
                f"Invalid record type: {category}. Expected one of: {', '.join(RECORD_CATEGORIES)}"
            )

        slug = slugify(target)
        if not slug:
            raise ValueError(
                f"Target {target!r} must contain at least one letter, digit, space or hyphen"
            )

        prefix = RECORD_PREFIXES[category]
        if category == "code":
            return f"{prefix}{slug}.md"

        self.ensure_directory()
        pattern = SEQUENCE_PATTERNS[category]
        numbers = []
        for name in os.listdir(self.root):
            if categorize_file(name) != category or not self._inside_root(self.root / name):
                continue
            match = pattern.match(name)
            if match:
                numbers.append(int(match.group(1)))

        next_number = max(numbers) + 1 if numbers else 1
        return f"{prefix}{next_number:03d}.{slug}.md"

    def _inside_root(self, path: Path) -> bool:
        """True if the entry, after following symlinks, stays under the root."""
        resolved = path.resolve()
        return resolved != self.root and resolved.is_relative_to(self.root)

    def _create_backup(self, target: Path) -> Path:
        timestamp = int(time.time() * 1000)
        backup = target.with_name(f"{target.name}.{timestamp}_{uuid.uuid4().hex[:8]}.bak")
        shutil.copy2(target, backup)
        self.log.debug(f"Backed up {target.name} to {backup.name}")
        return backup

    def _restore_backup(self, backup: Path, target: Path) -> None:
        try:
            os.replace(backup, target)
            self.log.warning(f"Write to {target.name} failed; restored previous version")
        except OSError as e:
            self.log.error(f"Failed to restore {target.name} from {backup.name}: {e}")

    def _write_text(self, target: Path, content: str) -> None:
        """Write via temp file + rename so readers never see a partial file."""
        fd, temp_path = tempfile.mkstemp(
            dir=target.parent,
            prefix=f".{target.name}",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, target)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

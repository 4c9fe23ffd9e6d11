"""Security validation for every file touched under the managed directory."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


DEFAULT_FORBIDDEN_PATTERNS = (
    r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>",
    r"javascript:",
    r"<iframe\b[^>]*>",
    r"on\w+\s*=",
    r"eval\s*\(",
)

SAFE_FILENAME = re.compile(r"^[a-zA-Z0-9._-]+$")


class SecurityValidationError(ValueError):
    """Raised when a path, content or size violates the security policy."""

    def __init__(self, message: str):
        super().__init__(f"SecurityValidation: {message}")


@dataclass(frozen=True)
class SecurityPolicy:
    """Limits enforced by SecurityValidator.

    Attributes:
        max_file_size: Maximum encoded size in bytes
        max_content_length: Maximum text length in characters
        allowed_extensions: File extensions that may be read or written
        max_filename_length: Maximum length of a candidate path
        forbidden_patterns: Case-insensitive regexes rejected in content
    """
    max_file_size: int = 1048576
    max_content_length: int = 524288
    allowed_extensions: tuple[str, ...] = (".md", ".json", ".txt")
    max_filename_length: int = 200
    forbidden_patterns: tuple[str, ...] = field(default=DEFAULT_FORBIDDEN_PATTERNS)


class SecurityValidator:
    """Validates paths, content and sizes against a fixed policy.

    All paths are resolved against a trusted root and must stay strictly
    inside it.
    """

    def __init__(
        self,
        trusted_root: Path,
        policy: SecurityPolicy | None = None,
        log: logging.Logger | None = None,
    ):
        self.trusted_root = Path(trusted_root).resolve()
        self.policy = policy or SecurityPolicy()
        self.log = log or logger
        self._patterns = [
            re.compile(p, re.IGNORECASE) for p in self.policy.forbidden_patterns
        ]

    def validate_path(self, candidate: str) -> Path:
        """Resolve a candidate path inside the trusted root.

        Args:
            candidate: Path relative to the trusted root

        Returns:
            Absolute resolved path

        Raises:
            SecurityValidationError: If any path check fails
        """
        if not isinstance(candidate, str) or not candidate:
            raise SecurityValidationError("File path must be a non-empty string")

        limit = self.policy.max_filename_length
        if len(candidate) > limit:
            raise SecurityValidationError(f"File path exceeds maximum length of {limit}")

        normalized = os.path.normpath(candidate)
        resolved = (self.trusted_root / normalized).resolve()

        if resolved == self.trusted_root or not resolved.is_relative_to(self.trusted_root):
            raise SecurityValidationError("Path traversal detected - access denied")

        if ".." in normalized or "~" in normalized:
            raise SecurityValidationError("Dangerous path patterns detected")

        if not SAFE_FILENAME.match(resolved.name):
            raise SecurityValidationError(
                "Invalid filename - only alphanumeric, dots, underscores, and hyphens allowed"
            )

        name = resolved.name.lower()
        allowed = self.policy.allowed_extensions
        if not any(name.endswith(ext.lower()) for ext in allowed):
            raise SecurityValidationError(
                f"File extension not allowed. Permitted extensions: {', '.join(allowed)}"
            )

        return resolved

    def validate_content(self, content: str, context: str | None = None) -> None:
        """Reject oversized, script-bearing or binary content."""
        if not isinstance(content, str):
            raise SecurityValidationError("Content must be a string")

        limit = self.policy.max_content_length
        if len(content) > limit:
            raise SecurityValidationError(
                f"Content exceeds maximum length of {limit} characters"
            )

        for pattern in self._patterns:
            if pattern.search(content):
                where = f" in {context}" if context else ""
                self.log.warning(f"Forbidden content pattern {pattern.pattern!r} matched{where}")
                raise SecurityValidationError(f"Potentially malicious content detected{where}")

        if "\0" in content:
            raise SecurityValidationError("Binary content not allowed in text files")

    def validate_size(self, size_in_bytes: int, context: str | None = None) -> None:
        """Reject negative, non-integer or oversized byte counts."""
        if isinstance(size_in_bytes, bool) or not isinstance(size_in_bytes, int) or size_in_bytes < 0:
            raise SecurityValidationError("File size must be a non-negative integer")

        limit = self.policy.max_file_size
        if size_in_bytes > limit:
            where = f" for {context}" if context else ""
            raise SecurityValidationError(
                f"File size {size_in_bytes} bytes exceeds maximum allowed {limit} bytes{where}"
            )

    def validate_operation(self, candidate: str, content: str, context: str | None = None) -> Path:
        """Run path, content and encoded-size checks in order.

        Returns:
            The validated absolute path
        """
        path = self.validate_path(candidate)
        self.validate_content(content, context)
        self.validate_size(len(content.encode("utf-8")), context)
        return path

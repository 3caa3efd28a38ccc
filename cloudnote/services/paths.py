"""
Path Policy.

Which URL paths may address a note, and random path generation.
"""

import re
import secrets
from dataclasses import dataclass, field
from random import Random

from cloudnote.core.config import AppConfig, get_app_config
from cloudnote.core.exceptions import ValidationError

PATH_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
GENERATED_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"


@dataclass(frozen=True)
class PathPolicy:
    """Path shape, length bounds and reserved names."""

    min_length: int = 1
    max_length: int = 20
    reserved: frozenset[str] = field(default_factory=lambda: frozenset({"admin", "api", "static"}))
    generation_attempts: int = 10

    @classmethod
    def from_config(cls, app_config: AppConfig | None = None) -> "PathPolicy":
        path_config = (app_config or get_app_config()).notes.path
        return cls(
            min_length=path_config.min_length,
            max_length=path_config.max_length,
            reserved=frozenset(path_config.reserved),
            generation_attempts=path_config.generation_attempts,
        )

    def is_reserved(self, path: str) -> bool:
        return path in self.reserved

    def is_valid(self, path: str | None) -> bool:
        if not path or self.is_reserved(path):
            return False
        if not self.min_length <= len(path) <= self.max_length:
            return False
        return PATH_PATTERN.match(path) is not None

    def validate(self, path: str | None) -> str:
        """
        Return path unchanged when it may address a note.

        Raises:
            ValidationError: For empty, reserved, too short, too long or
                badly shaped paths
        """
        if not self.is_valid(path):
            raise ValidationError(
                "Invalid path",
                details={
                    "path": path,
                    "rule": (
                        f"{self.min_length}-{self.max_length} characters of "
                        "letters, digits, '-' or '_', not a reserved name"
                    ),
                },
            )
        return path

    def random_path(self, rng: Random | None = None) -> str:
        """Lowercase alphanumeric path with a length drawn uniformly from the bounds."""
        rng = rng or secrets.SystemRandom()
        length = rng.randint(self.min_length, self.max_length)
        return "".join(rng.choice(GENERATED_ALPHABET) for _ in range(length))

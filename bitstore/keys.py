"""Identifier handling: generation, sanitization and storage key derivation.

Keys must stay byte-for-byte compatible with existing assetstores, so the
sharding layout below is fixed: ``digits_per_level`` characters per directory,
at most ``directory_levels`` directories, and the sanitized identifier as the
last path element.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Internal ids of registered bitstreams start with this flag.
REGISTERED_FLAG = "-R"

# Length of the marker stripped from registered ids.
REGISTERED_MARKER_LENGTH = 2

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


def generate_identifier() -> str:
    """Fresh opaque internal id: the decimal form of a random UUID."""
    return str(uuid.uuid4().int)


def is_registered(identifier: str) -> bool:
    return identifier.startswith(REGISTERED_FLAG)


def sanitize_identifier(identifier: str) -> str:
    """Strip every character that is not an ASCII letter or digit."""
    return _UNSAFE_CHARS.sub("", identifier)


def intermediate_path(
    identifier: str,
    digits_per_level: int = 2,
    directory_levels: int = 3,
) -> str:
    """Directory fan-out prefix for a sanitized identifier, ending with ``/``.

    Identifiers no longer than ``digits_per_level * directory_levels`` get a
    single directory named after themselves.
    """
    max_characters = digits_per_level * directory_levels
    if not identifier or len(identifier) <= max_characters:
        return f"{identifier}/"

    parts = [identifier[0:digits_per_level]]
    digits = 0
    level = 1
    while level < directory_levels and digits + digits_per_level <= len(identifier):
        digits = level * digits_per_level
        parts.append(identifier[digits:digits + digits_per_level])
        level += 1
    return "/".join(parts) + "/"


@dataclass(frozen=True)
class KeyLayout:
    """Maps internal ids to storage keys for one store configuration."""

    subfolder: str = ""
    use_relative_path: bool = True
    digits_per_level: int = 2
    directory_levels: int = 3
    registered: Callable[[str], bool] = is_registered

    def relative_path(self, identifier: str) -> str:
        if self.registered(identifier):
            rest = identifier[REGISTERED_MARKER_LENGTH:]
            if not rest:
                raise ValueError(f"Registered identifier has no path: {identifier!r}")
            return rest

        sanitized = sanitize_identifier(identifier)
        if not sanitized:
            raise ValueError(f"Identifier has no storable characters: {identifier!r}")
        prefix = intermediate_path(
            sanitized, self.digits_per_level, self.directory_levels
        )
        return prefix + sanitized

    def derive(self, identifier: str) -> str:
        """Full storage key for ``identifier``."""
        if not identifier:
            raise ValueError("Identifier must not be empty")

        key = self.relative_path(identifier) if self.use_relative_path else identifier
        if self.subfolder:
            key = f"{self.subfolder}/{key}"

        logger.debug("Container filepath for %s is %s", identifier, key)
        return key

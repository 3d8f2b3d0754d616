"""
Language detection for changed files.

Maps a repository-relative path to a language identifier ("python",
"rust", ...) using the file extension, or the whole file name for files like
``Dockerfile`` and ``Makefile``. Paths that match nothing get the
configured placeholder, ``"None"`` by default.

The built-in table can be extended or overridden with a YAML file of the form::

    python: [py, pyw, pyi]
    starlark: [bzl, star]
"""

from pathlib import Path, PurePosixPath
from typing import Dict, Optional, Set
import logging

from ..utils.yaml_utils import (
    DEFAULT_FILENAME_MAPPINGS,
    DEFAULT_LANGUAGE_MAPPINGS,
    load_language_mappings_yaml,
)

logger = logging.getLogger(__name__)

UNKNOWN_LANGUAGE = "None"


class LanguageMapper:
    """
    Maps file paths to language identifiers.

    Lookups are O(1): the language -> extensions table is inverted once at
    construction. File-name matches win over extension matches so that
    ``CMakeLists.txt`` is cmake rather than text.
    """

    def __init__(
        self,
        mappings_path: Optional[Path] = None,
        unknown_language: str = UNKNOWN_LANGUAGE,
    ):
        """Initialize the mapper.

        Args:
            mappings_path: Optional YAML file whose entries are merged over
                the built-in extension table
            unknown_language: Value returned for paths that match nothing

        Raises:
            FileNotFoundError: If mappings_path is given but does not exist
            ValueError: If mappings_path is not a valid mapping document
        """
        self.unknown_language = unknown_language

        language_to_extensions: Dict[str, Set[str]] = {
            lang: set(exts) for lang, exts in DEFAULT_LANGUAGE_MAPPINGS.items()
        }
        if mappings_path is not None:
            overrides = load_language_mappings_yaml(Path(mappings_path))
            logger.debug(
                f"Loaded {len(overrides)} language mappings from {mappings_path}"
            )
            # An overridden extension moves to its new language
            claimed = set().union(*overrides.values()) if overrides else set()
            for exts in language_to_extensions.values():
                exts.difference_update(claimed)
            language_to_extensions.update(overrides)

        self._extension_to_language: Dict[str, str] = {}
        for lang, exts in language_to_extensions.items():
            for ext in exts:
                self._extension_to_language.setdefault(ext, lang)

        self._filename_to_language: Dict[str, str] = {}
        for lang, names in DEFAULT_FILENAME_MAPPINGS.items():
            for name in names:
                self._filename_to_language[name] = lang

    def detect(self, path: str) -> str:
        """
        Detect the language of a repository-relative path.

        Args:
            path: File path as reported by git (forward slashes)

        Returns:
            Language identifier, or the unknown placeholder

        Examples:
            >>> LanguageMapper().detect("src/main.rs")
            'rust'
            >>> LanguageMapper().detect("docs/Dockerfile")
            'dockerfile'
            >>> LanguageMapper().detect("LICENSE")
            'None'
        """
        name = PurePosixPath(path).name.lower()

        language = self._filename_to_language.get(name)
        if language:
            return language

        suffix = PurePosixPath(name).suffix
        if suffix:
            language = self._extension_to_language.get(suffix[1:])
            if language:
                return language

        return self.unknown_language

    def get_supported_languages(self) -> Set[str]:
        """Get every language identifier the mapper can return."""
        return set(self._extension_to_language.values()) | set(
            self._filename_to_language.values()
        )

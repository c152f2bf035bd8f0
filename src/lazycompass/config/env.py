"""Environment variable interpolation for config values.

Resolves ${VAR} placeholders against the process environment, falling back
to a single dotenv file. The repository .env is consulted when it exists,
otherwise the global one; the two files are never merged.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import dotenv_values

from lazycompass.exceptions import ConfigParseError, InvalidValueError, MissingEnvVarError

logger = logging.getLogger(__name__)


class EnvLookup:
    """Variable lookup over the process environment and one dotenv file.

    Args:
        dotenv_candidates: Dotenv paths in priority order. The first one that
            exists supplies its key set; later ones are ignored.
        environ: Environment mapping. Defaults to os.environ.
    """

    def __init__(
        self,
        dotenv_candidates: tuple[Path | None, ...] = (),
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.environ = os.environ if environ is None else environ
        self.dotenv_path = next(
            (path for path in dotenv_candidates if path is not None and path.is_file()),
            None,
        )
        self._dotenv: dict[str, str | None] | None = None

    def _dotenv_values(self) -> dict[str, str | None]:
        if self._dotenv is None:
            if self.dotenv_path is None:
                self._dotenv = {}
            else:
                self._dotenv = self._read_dotenv(self.dotenv_path)
        return self._dotenv

    @staticmethod
    def _read_dotenv(path: Path) -> dict[str, str | None]:
        logger.debug("Reading dotenv file %s", path)
        try:
            return dict(dotenv_values(path, encoding="utf-8"))
        except UnicodeDecodeError as e:
            raise ConfigParseError(str(path), f"not valid UTF-8 (byte {e.start})") from e
        except OSError as e:
            raise ConfigParseError(str(path), f"unable to read: {e.strerror}") from e

    def get(self, name: str) -> str | None:
        if name in self.environ:
            return self.environ[name]
        return self._dotenv_values().get(name)


def interpolate(text: str, field: str, lookup: EnvLookup) -> str:
    """Replace ${VAR} placeholders in text.

    A '$' not followed by '{' is kept as is. Substituted values are not
    scanned again.

    Args:
        text: Raw config value.
        field: Config field path, used in error messages.
        lookup: Variable source.

    Returns:
        The interpolated string.

    Raises:
        MissingEnvVarError: If a variable is defined in neither source.
        InvalidValueError: If a placeholder is empty or unterminated.
        ConfigParseError: If the dotenv file is unreadable or not UTF-8.
    """
    parts: list[str] = []
    remainder = text

    while (start := remainder.find("${")) != -1:
        parts.append(remainder[:start])
        rest = remainder[start + 2 :]
        end = rest.find("}")
        if end == -1:
            raise InvalidValueError(field, "has an unterminated ${ placeholder")
        name = rest[:end]
        if not name.strip():
            raise InvalidValueError(field, "has an empty ${} placeholder")
        value = lookup.get(name)
        if value is None:
            raise MissingEnvVarError(name, field)
        parts.append(value)
        remainder = rest[end + 1 :]

    parts.append(remainder)
    return "".join(parts)

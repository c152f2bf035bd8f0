"""Exceptions for lazycompass.

Every error raised by the core derives from LazyCompassError and carries
the file path, field name, or flag name needed to correct the problem.
"""


class LazyCompassError(Exception):
    """Base exception for lazycompass."""

    pass


# Configuration


class ConfigError(LazyCompassError):
    """Base exception for configuration errors."""

    pass


class ConfigParseError(ConfigError):
    """Raised when a config file cannot be read or is not valid TOML."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid config file {path}: {detail}")


class MissingRequiredError(ConfigError):
    """Raised when a required config field is absent or blank."""

    def __init__(self, field: str, detail: str = "must not be empty") -> None:
        self.field = field
        super().__init__(f"Invalid config: {field} {detail}")


class DuplicateConnectionError(ConfigError):
    """Raised when two connections share the same name."""

    def __init__(self, name: str, source: str = "merged config") -> None:
        self.name = name
        self.source = source
        super().__init__(f"Duplicate connection name '{name}' in {source}")


class InvalidValueError(ConfigError):
    """Raised when a config field has a value of the wrong type or range."""

    def __init__(self, field: str, detail: str) -> None:
        self.field = field
        self.detail = detail
        super().__init__(f"Invalid config: {field} {detail}")


class MissingEnvVarError(ConfigError):
    """Raised when a ${VAR} placeholder names an undefined variable."""

    def __init__(self, name: str, field: str) -> None:
        self.name = name
        self.field = field
        super().__init__(
            f"Missing environment variable '{name}' referenced by {field}. "
            "Set it in the environment or in a .env file."
        )


class RepoConfigNotFoundError(ConfigError):
    """Raised when a repository config is required outside a repository."""

    def __init__(self) -> None:
        super().__init__(
            "No repository config found; run inside a repo with .lazycompass or use --global"
        )


# Saved spec addressing


class AddressingError(LazyCompassError):
    """Base exception for malformed saved spec names."""

    def __init__(self, stem: str, detail: str) -> None:
        self.stem = stem
        self.detail = detail
        super().__init__(f"Invalid saved spec name '{stem}': {detail}")


class InvalidSegmentsError(AddressingError):
    """Raised for names that are neither <name> nor <db>.<collection>.<name>."""

    pass


class EmptySegmentError(AddressingError):
    """Raised for names with a leading, trailing, or doubled '.'."""

    pass


# Saved spec resolution


class ResolutionError(LazyCompassError):
    """Base exception for saved spec loading and target resolution."""

    pass


class SpecNotFoundError(ResolutionError):
    """Raised when no file exists for a saved spec."""

    def __init__(self, stem: str, path: str) -> None:
        self.stem = stem
        self.path = path
        super().__init__(f"Saved spec '{stem}' not found: {path}")


class SpecExistsError(ResolutionError):
    """Raised when saving over an existing spec without overwrite."""

    def __init__(self, stem: str, path: str) -> None:
        self.stem = stem
        self.path = path
        super().__init__(f"Saved spec '{stem}' already exists: {path}")


class PayloadInvalidError(ResolutionError):
    """Raised when a saved spec payload fails validation."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid saved spec {path}: {detail}")


class MissingDatabaseError(ResolutionError):
    """Raised when a shared spec has no database from any source."""

    def __init__(self, stem: str) -> None:
        self.stem = stem
        super().__init__(
            f"Saved spec '{stem}' is shared; pass --db or set "
            "default_database on the connection"
        )


class MissingCollectionError(ResolutionError):
    """Raised when a shared spec has no collection."""

    def __init__(self, stem: str) -> None:
        self.stem = stem
        super().__init__(f"Saved spec '{stem}' is shared; pass --collection")


class ScopeConflictError(ResolutionError):
    """Raised when an explicit hint disagrees with a scoped spec's name."""

    def __init__(self, stem: str, option: str, expected: str, given: str) -> None:
        self.stem = stem
        self.option = option
        super().__init__(
            f"Saved spec '{stem}' targets {option} '{expected}', "
            f"but {option} '{given}' was given; drop --{option}"
        )


class ConnectionNotFoundError(ResolutionError):
    """Raised when no connection can be selected."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


# Safety gate


class SafetyDeniedError(LazyCompassError):
    """Raised when the safety gate denies an operation."""

    def __init__(self, operation: str, reason: str, override: str) -> None:
        self.operation = operation
        self.reason = reason
        self.override = override
        super().__init__(f"{operation} blocked ({reason}); pass {override} to proceed")


class ReadOnlyError(SafetyDeniedError):
    """Raised for writes while read-only mode is in effect."""

    pass


class PipelineWriteBlockedError(SafetyDeniedError):
    """Raised for $out/$merge stages that are not allowed."""

    pass

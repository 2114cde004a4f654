"""Configuration objects for OFX conversion.

All per-run settings (quiet mode, output formatting, charset handling, the
schema to use) travel in an explicit, immutable ``ConverterConfig`` value that
is threaded through the driver call instead of living in process-wide flags.
"""

import codecs
import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

DEFAULT_ROOT_TAG = "OFX"
DEFAULT_FALLBACK_ENCODING = "latin-1"

_BOOL_FIELDS = ("quiet", "enable_metrics", "enable_memory_tracking")
_STR_FIELDS = ("root_tag", "fallback_encoding")
_OPTIONAL_STR_FIELDS = ("encoding", "schema_path", "correlation_id")


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


def _check_codec(name: str, field_name: str) -> None:
    try:
        codecs.lookup(name)
    except LookupError as e:
        raise ConfigValidationError(
            f"Unknown encoding for {field_name}: {name!r}",
            field_name=field_name,
            suggestions=["Use a codec name known to Python, e.g. 'cp1252'"],
        ) from e


@dataclass(frozen=True)
class ConverterConfig:
    """Immutable configuration for a conversion run.

    Attributes:
        root_tag: Tag name of the document root; its opening form marks the
            start of the document and its close stops tokenization
        quiet: Suppress the diagnostics channel (log output and recorded
            notices) without affecting the output tree
        encoding: Codec forced for bytes input, bypassing header detection
        fallback_encoding: Codec used for bytes input when the OFX header
            names no recognised charset
        schema_path: Optional JSON schema file replacing the bundled OFX schema
        json_indent: Indentation for serialised output; ``None`` is compact
        enable_metrics: Collect performance metrics on the result
        enable_memory_tracking: Measure resident memory delta with psutil
        correlation_id: Correlation ID attached to every log record
    """

    root_tag: str = DEFAULT_ROOT_TAG
    quiet: bool = False
    encoding: Optional[str] = None
    fallback_encoding: str = DEFAULT_FALLBACK_ENCODING
    schema_path: Optional[str] = None
    json_indent: Optional[int] = None
    enable_metrics: bool = True
    enable_memory_tracking: bool = False
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        for name in _BOOL_FIELDS:
            if not isinstance(getattr(self, name), bool):
                raise ConfigValidationError(
                    f"{name} must be true or false, got {getattr(self, name)!r}",
                    field_name=name,
                )
        for name in _STR_FIELDS + _OPTIONAL_STR_FIELDS:
            value = getattr(self, name)
            if value is None and name in _OPTIONAL_STR_FIELDS:
                continue
            if not isinstance(value, str):
                raise ConfigValidationError(
                    f"{name} must be a string, got {value!r}", field_name=name
                )
        if self.json_indent is not None and (
            isinstance(self.json_indent, bool) or not isinstance(self.json_indent, int)
        ):
            raise ConfigValidationError(
                f"json_indent must be an integer or None, got {self.json_indent!r}",
                field_name="json_indent",
            )
        if not self.root_tag or any(
            ch.isspace() or ch in '<>/="' for ch in self.root_tag
        ):
            raise ConfigValidationError(
                f"root_tag must be a bare tag name, got {self.root_tag!r}",
                field_name="root_tag",
            )
        if self.encoding is not None:
            _check_codec(self.encoding, "encoding")
        _check_codec(self.fallback_encoding, "fallback_encoding")
        if self.json_indent is not None and self.json_indent < 0:
            raise ConfigValidationError(
                "json_indent must be >= 0 or None", field_name="json_indent"
            )

    @property
    def root_marker(self) -> str:
        """Literal opening form of the root tag searched for in the input."""
        return f"<{self.root_tag}>"

    def override(self, **kwargs: Any) -> "ConverterConfig":
        """Create a new configuration with specific overrides.

        Example:
            >>> config = ConverterConfig()
            >>> config.override(quiet=True).quiet
            True
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(kwargs) - known)
        if unknown:
            raise ConfigValidationError(
                f"Unknown configuration fields: {', '.join(unknown)}",
                field_name=unknown[0],
            )
        return replace(self, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConverterConfig":
        """Create configuration from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        try:
            return cls(**{key: value for key, value in data.items() if key in known})
        except TypeError as e:
            raise ConfigValidationError(f"Invalid configuration data: {e}") from e

    @classmethod
    def from_json(cls, json_str: str) -> "ConverterConfig":
        """Create configuration from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Configuration is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration JSON must be an object")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "ConverterConfig":
        """Load configuration from a JSON file."""
        path = Path(config_path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Could not read configuration file {path}: {e}") from e
        return cls.from_json(text)

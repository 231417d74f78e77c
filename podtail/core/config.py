"""Core configuration and settings for podtail."""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional, Pattern, Tuple, Union

import yaml
from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict, SettingsError

from .exceptions import ConfigurationError

DEFAULT_SEARCH_PATHS = [
    "./podtail.yaml",
    "./podtail.yml",
    "~/.config/podtail/config.yaml",
    "~/.config/podtail/config.yml",
]

HUE_MAX = 359


class HueInterval(BaseModel):
    """Inclusive range of hues on the 0-359 color wheel."""

    start: int = Field(..., ge=0, le=HUE_MAX, description="First hue of the range")
    end: int = Field(..., ge=0, le=HUE_MAX, description="Last hue of the range")

    @model_validator(mode="after")
    def validate_order(self):
        """Validate that the range is not empty or reversed."""
        if self.start >= self.end:
            raise ValueError(
                f"hue interval {self.start}-{self.end}: start must be lower than end"
            )
        return self

    @classmethod
    def parse(cls, value: str) -> "HueInterval":
        """Parse a ``start-end`` string."""
        parts = value.split("-")
        if len(parts) != 2:
            raise ValueError(
                f"expected 2 elements, found {len(parts)} for {value!r}"
            )
        try:
            start, end = int(parts[0]), int(parts[1])
        except ValueError as e:
            raise ValueError(f"failed to parse {value!r}: {e}") from e
        return cls(start=start, end=end)

    @property
    def hues(self) -> List[int]:
        """All hue values covered by the interval."""
        return list(range(self.start, self.end + 1))

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


class LoggingConfig(BaseModel):
    """Configuration for diagnostic logging."""

    level: str = Field(
        "WARNING", description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    file: Optional[str] = Field(
        None, description="Log file path (if None, logs to stderr only)"
    )
    max_size: int = Field(10, gt=0, description="Maximum log file size in MB")
    backup_count: int = Field(5, ge=0, description="Number of backup log files to keep")
    console: bool = Field(True, description="Enable console logging on stderr")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(sorted(valid_levels))}")
        return v.upper()


@dataclass(frozen=True)
class StreamSettings:
    """Validated, immutable settings consumed by the streaming engine."""

    pod_search: Pattern[str]
    namespaces: Tuple[str, ...]
    kubeconfig: Optional[str]
    previous: bool
    since_seconds: int
    tail_lines: int
    timestamps: bool
    loop_pause: float
    disable_pods_refresh: bool
    debug_color: Tuple[int, int, int]
    color_cycle_len: int
    color_saturation: int
    color_lightness: int
    hue_intervals: Tuple[HueInterval, ...]
    filter: Optional[Pattern[str]] = None
    inv_filter: Optional[Pattern[str]] = None
    replace_pattern: Optional[Pattern[str]] = None
    replace_value: Optional[str] = None
    verbose: bool = False

    @property
    def wants_history(self) -> bool:
        """Whether recent lines are printed before following."""
        return self.tail_lines > 0 or self.since_seconds > 0


def _compile(value: Optional[str], name: str) -> Optional[Pattern[str]]:
    if value is None:
        return None
    try:
        return re.compile(value)
    except re.error as e:
        raise ValueError(f"{name}: invalid regex {value!r}: {e}") from e


class Config(BaseSettings):
    """Main configuration for podtail."""

    model_config = SettingsConfigDict(
        env_prefix="PODTAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Pod selection
    pod_search: str = Field(".+", description="Regex matching the pod names to follow")
    kubeconfig: Optional[str] = Field(
        None, description="Path to the kubeconfig file (inferred if unset)"
    )
    namespaces: Annotated[List[str], NoDecode] = Field(
        default_factory=list,
        description="Namespaces to search (current context namespace if empty)",
    )

    # Log retrieval
    previous: bool = Field(False, description="Retrieve previous terminated container logs")
    since_seconds: int = Field(
        0, ge=0, description="Show logs newer than this many seconds (0 = unset)"
    )
    tail_lines: int = Field(
        0, ge=0, description="Number of lines from the end of the logs to show first"
    )
    timestamps: bool = Field(False, description="Show timestamps at the start of lines")

    # Discovery
    loop_pause: float = Field(
        2.0, gt=0, description="Seconds between two pod list queries"
    )
    disable_pods_refresh: bool = Field(
        False, description="Only follow the pods found at startup"
    )
    verbose: bool = Field(False, description="Enable verbose diagnostic logging")

    # Colors
    debug_color: str = Field(
        "255,255,255", description="RGB color of diagnostic notices (r,g,b)"
    )
    color_cycle_len: int = Field(
        0,
        ge=0,
        le=255,
        description="Initial color cycle length (0 = derived from the first pod count)",
    )
    color_saturation: int = Field(100, ge=0, le=100, description="Color saturation (0-100)")
    color_lightness: int = Field(50, ge=0, le=100, description="Color lightness (0-100)")
    hue_intervals: Annotated[List[HueInterval], NoDecode] = Field(
        default_factory=lambda: [HueInterval(start=0, end=HUE_MAX)],
        description="Hue ranges colors are picked from",
    )

    # Line processing
    filter: Optional[str] = Field(None, description="Only print lines matching this regex")
    inv_filter: Optional[str] = Field(None, description="Drop lines matching this regex")
    replace_pattern: Optional[str] = Field(None, description="Regex to substitute in lines")
    replace_value: Optional[str] = Field(None, description="Substitution for replace_pattern")

    logging: LoggingConfig = Field(
        default_factory=lambda: LoggingConfig(),  # type: ignore[call-arg]
        description="Logging configuration",
    )

    @field_validator("hue_intervals", mode="before")
    @classmethod
    def parse_hue_intervals(cls, v):
        """Accept ``start-end`` strings as well as mappings."""
        if isinstance(v, str):
            v = [item for item in v.split(",") if item.strip()]
        if not v:
            raise ValueError("at least one hue interval is required")
        return [HueInterval.parse(item.strip()) if isinstance(item, str) else item for item in v]

    @field_validator("namespaces", mode="before")
    @classmethod
    def parse_namespaces(cls, v):
        """Accept a comma separated string."""
        if isinstance(v, str):
            v = v.split(",")
        return [item.strip() for item in v if item and item.strip()]

    @field_validator("debug_color")
    @classmethod
    def validate_debug_color(cls, v):
        """Validate an ``r,g,b`` triple."""
        cls._parse_rgb(v)
        return v

    @field_validator("pod_search", "filter", "inv_filter", "replace_pattern")
    @classmethod
    def validate_regex(cls, v, info):
        """Validate that the pattern compiles."""
        _compile(v, info.field_name)
        return v

    @model_validator(mode="after")
    def validate_replace(self):
        """Validate that a replacement comes with both its halves."""
        if (self.replace_pattern is None) != (self.replace_value is None):
            raise ValueError("replace_pattern and replace_value must be set together")
        return self

    @staticmethod
    def _parse_rgb(value: str) -> Tuple[int, int, int]:
        parts = value.split(",")
        if len(parts) != 3:
            raise ValueError(f"expected 3 elements, found {len(parts)} for {value!r}")
        try:
            rgb = tuple(int(part) for part in parts)
        except ValueError as e:
            raise ValueError(f"failed to parse {value!r}: {e}") from e
        if any(not 0 <= component <= 255 for component in rgb):
            raise ValueError(f"color components must be within 0-255: {value!r}")
        return rgb  # type: ignore[return-value]

    def compile(self) -> StreamSettings:
        """Build the immutable settings record used by the engine.

        Raises:
            ConfigurationError: If a pattern cannot be compiled.
        """
        try:
            return StreamSettings(
                pod_search=_compile(self.pod_search, "pod_search"),  # type: ignore[arg-type]
                namespaces=tuple(self.namespaces),
                kubeconfig=self.kubeconfig,
                previous=self.previous,
                since_seconds=self.since_seconds,
                tail_lines=self.tail_lines,
                timestamps=self.timestamps,
                loop_pause=self.loop_pause,
                disable_pods_refresh=self.disable_pods_refresh,
                debug_color=self._parse_rgb(self.debug_color),
                color_cycle_len=self.color_cycle_len,
                color_saturation=self.color_saturation,
                color_lightness=self.color_lightness,
                hue_intervals=tuple(self.hue_intervals),
                filter=_compile(self.filter, "filter"),
                inv_filter=_compile(self.inv_filter, "inv_filter"),
                replace_pattern=_compile(self.replace_pattern, "replace_pattern"),
                replace_value=self.replace_value,
                verbose=self.verbose,
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    @staticmethod
    def _expand_environment_variables(config_data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(config_data, dict):
            return {
                key: Config._expand_environment_variables(value)
                for key, value in config_data.items()
            }
        elif isinstance(config_data, list):
            return [Config._expand_environment_variables(item) for item in config_data]
        elif isinstance(config_data, str):
            return os.path.expandvars(config_data)
        else:
            return config_data

    @classmethod
    def _load_yaml_file(cls, config_path: Union[str, Path]) -> Dict[str, Any]:
        """Load and parse YAML configuration with environment variable expansion."""
        config_file = Path(config_path).expanduser().resolve()

        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_file}")

        if not config_file.is_file():
            raise ConfigurationError(f"Configuration path is not a file: {config_file}")

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file {config_file}: {e}"
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Error reading configuration file {config_file}: {e}"
            ) from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(
                f"Configuration file {config_file} must contain a mapping"
            )

        return cls._expand_environment_variables(config_data)

    @classmethod
    def find_config_file(
        cls, search_paths: Optional[List[str]] = None
    ) -> Optional[Path]:
        """Find the first existing configuration file in the search paths."""
        for path_str in search_paths or DEFAULT_SEARCH_PATHS:
            config_path = Path(path_str).expanduser().resolve()
            if config_path.exists() and config_path.is_file():
                return config_path

        return None

    @classmethod
    def load(
        cls,
        config_path: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        search_paths: Optional[List[str]] = None,
    ) -> "Config":
        """Load configuration from a YAML file and apply overrides on top.

        Args:
            config_path: Explicit path to config file. If None, will search.
            overrides: Values that take precedence over the file (CLI options).
            search_paths: Custom search paths if config_path is None.

        Returns:
            Config instance.

        Raises:
            ConfigurationError: If the file is unreadable or values are invalid.
        """
        config_data: Dict[str, Any] = {}
        if config_path:
            config_data = cls._load_yaml_file(config_path)
        else:
            config_file = cls.find_config_file(search_paths)
            if config_file:
                config_data = cls._load_yaml_file(config_file)

        if overrides:
            config_data.update(
                {key: value for key, value in overrides.items() if value is not None}
            )

        try:
            return cls(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e
        except SettingsError as e:
            raise ConfigurationError(f"Invalid environment setting: {e}") from e

    @classmethod
    def create_template(cls, config_path: str) -> Path:
        """Create a template configuration file with documentation.

        Args:
            config_path: Path where to create the template file.

        Returns:
            The resolved path of the written file.
        """
        config_file = Path(config_path).expanduser().resolve()
        config_file.parent.mkdir(parents=True, exist_ok=True)

        yaml_lines = [
            "# podtail configuration",
            "# This file supports environment variable expansion using "
            "$VAR or ${VAR} syntax",
            "",
        ]

        defaults = cls.model_construct()
        data = defaults.model_dump(exclude={"logging"})
        data["hue_intervals"] = [str(interval) for interval in defaults.hue_intervals]
        for name, field in cls.model_fields.items():
            if name not in data:
                continue
            yaml_lines.append(f"# {field.description}")
            section_yaml = yaml.safe_dump({name: data[name]}, default_flow_style=False)
            yaml_lines.extend(section_yaml.strip().split("\n"))

        yaml_lines.append("")
        yaml_lines.append("# Diagnostic logging configuration")
        section_yaml = yaml.safe_dump(
            {"logging": defaults.logging.model_dump()}, default_flow_style=False, indent=2
        )
        yaml_lines.extend(section_yaml.strip().split("\n"))

        try:
            with open(config_file, "w", encoding="utf-8") as f:
                f.write("\n".join(yaml_lines) + "\n")
        except OSError as e:
            raise ConfigurationError(
                f"Error creating template file {config_file}: {e}"
            ) from e

        return config_file

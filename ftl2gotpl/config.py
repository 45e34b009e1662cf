"""
Run configuration for batch conversion.

Values come from three layers, later ones winning: built-in defaults,
an optional YAML config file, explicit command-line flags.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigError

DEFAULT_GLOB = "**/*.ftl"
DEFAULT_OUTPUT_EXT = ".gotmpl"

_yaml = YAML(typ="safe")

# Config-file key -> RunConfig attribute
_FILE_KEYS: Dict[str, str] = {
    "in": "input_dir",
    "out": "output_dir",
    "glob": "glob",
    "ext": "ext",
    "strict": "strict",
    "report_json": "report_json",
    "report_csv": "report_csv",
}


@dataclass
class RunConfig:
    """Options of one conversion run."""
    input_dir: Optional[Path] = None
    output_dir: Optional[Path] = None
    glob: str = DEFAULT_GLOB
    ext: str = DEFAULT_OUTPUT_EXT
    strict: bool = False
    report_json: Optional[Path] = None
    report_csv: Optional[Path] = None

    def validate(self) -> RunConfig:
        """
        Normalize and check the configuration.

        Blank glob/ext fall back to defaults.

        Returns:
            self, for chaining

        Raises:
            ConfigError: On missing or invalid values
        """
        if self.input_dir is None or not str(self.input_dir).strip():
            raise ConfigError("--in is required")
        if self.output_dir is None or not str(self.output_dir).strip():
            raise ConfigError("--out is required")

        if not self.glob.strip():
            self.glob = DEFAULT_GLOB
        if not self.ext.strip():
            self.ext = DEFAULT_OUTPUT_EXT
        if not self.ext.startswith("."):
            raise ConfigError(f"--ext must start with '.', got {self.ext!r}")

        self.input_dir = Path(self.input_dir)
        self.output_dir = Path(self.output_dir)

        if not self.input_dir.exists():
            raise ConfigError(f"input path '{self.input_dir}' is not accessible")
        if not self.input_dir.is_dir():
            raise ConfigError(f"input path '{self.input_dir}' must be a directory")

        return self

    def merged(self, overrides: Dict[str, Any]) -> RunConfig:
        """Copy with every non-None override applied."""
        known = {f.name for f in fields(self)}
        changes = {k: v for k, v in overrides.items() if v is not None and k in known}
        return replace(self, **changes)


def _coerce(attr: str, value: Any, path: Path) -> Any:
    if attr == "strict":
        if not isinstance(value, bool):
            raise ConfigError(f"{path}: 'strict' must be a boolean, got {value!r}")
        return value
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{path}: '{attr}' must be a string, got {value!r}")
    if attr in ("input_dir", "output_dir", "report_json", "report_csv"):
        # Relative paths are resolved against the config file's directory
        p = Path(value)
        return p if p.is_absolute() else path.parent / p
    return value


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Read a YAML config file into RunConfig keyword overrides.

    Raises:
        ConfigError: When the file is unreadable, malformed or has unknown keys
    """
    try:
        raw = _yaml.load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    except YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top-level YAML must be a mapping")

    unknown = sorted(set(raw) - set(_FILE_KEYS))
    if unknown:
        raise ConfigError(f"{path}: unknown config keys: {', '.join(map(str, unknown))}")

    return {_FILE_KEYS[key]: _coerce(_FILE_KEYS[key], value, path) for key, value in raw.items()}


def build_config(config_file: Optional[Path] = None, **flags: Any) -> RunConfig:
    """
    Layer defaults, the optional config file and explicit flags.

    Flags equal to None are treated as "not given".
    """
    cfg = RunConfig()
    if config_file is not None:
        cfg = cfg.merged(load_config_file(config_file))
    return cfg.merged(flags)


__all__ = [
    "DEFAULT_GLOB",
    "DEFAULT_OUTPUT_EXT",
    "RunConfig",
    "load_config_file",
    "build_config",
]

"""ccmm configuration loader.

Priority (high → low):
  1. CLI flags              (handled at call site — not in this module)
  2. Environment variables  (CCMM_HOME, CCMM_DEFAULT_PRESET_REPO)
  3. Global ~/.ccmm/config.yaml
  4. Hardcoded defaults

The config is a plain value: callers load it once and pass it into the
orchestrator. There is no module-level cache; use reload_config() to re-read.

Global config must never contain access tokens; GitHub credentials come from
GITHUB_TOKEN / GITHUB_ACCESS_TOKEN or the gh CLI.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CONFIG_VERSION = "1.0.0"
_CONFIG_NAME = "config.yaml"
_HOME_ENV = "CCMM_HOME"

# Matches api_key, *_token, token, *_secret, password, credential(s).
_CREDENTIAL_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_KEYS: frozenset[str] = frozenset(
    [
        "default_preset_repositories",
        "default_preset_repo",
        "default_presets",
        "lock_timeout",
        "version",
    ]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class CcmmConfig:
    """Root configuration object, built by load_config().

    Attributes:
        default_preset_repositories: Repositories offered during preset
            selection (``github.com/owner/repo`` or ``file:///path``).
        default_preset_repo: Repository that ``default_presets`` live in.
            Falls back to the first entry of ``default_preset_repositories``.
        default_presets: Preset files selected non-interactively (``--yes``).
        lock_timeout: Seconds to wait for the per-project advisory lock.
        source: Path the config was read from (None for pure defaults).
        file_values: File values of keys replaced by environment overrides;
            save_config() writes these instead of the overrides.
    """

    default_preset_repositories: list[str] = field(default_factory=list)
    default_preset_repo: str | None = None
    default_presets: list[str] = field(default_factory=list)
    lock_timeout: float = 10.0
    version: str = CONFIG_VERSION
    source: Path | None = None
    file_values: dict[str, Any] = field(default_factory=dict)

    @property
    def primary_repository(self) -> str | None:
        if self.default_preset_repo:
            return self.default_preset_repo
        if self.default_preset_repositories:
            return self.default_preset_repositories[0]
        return None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "version": CONFIG_VERSION,
            "default_preset_repositories": list(self.default_preset_repositories),
            "default_preset_repo": self.default_preset_repo,
            "default_presets": list(self.default_presets),
            "lock_timeout": self.lock_timeout,
        }
        data.update(self.file_values)
        return data


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def ccmm_home() -> Path:
    """Return the ccmm home directory ($CCMM_HOME or ~/.ccmm)."""
    override = os.environ.get(_HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".ccmm"


def global_config_path(home: Path | None = None) -> Path:
    return (home if home is not None else ccmm_home()) / _CONFIG_NAME


def is_initialized(home: Path | None = None) -> bool:
    """True once ``ccmm init`` has created the home directory and config file."""
    base = home if home is not None else ccmm_home()
    return base.is_dir() and (base / _CONFIG_NAME).is_file()


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_credentials(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any credential-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else str(k)
                if _CREDENTIAL_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  Tokens must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export GITHUB_TOKEN=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_KEYS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _as_str_list(data: dict[str, Any], key: str, source: Path) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' in '{source}' must be a list, got {type(value).__name__}.")
    return [str(v) for v in value]


def validate_config(cfg: CcmmConfig) -> None:
    """Raise ConfigError if *cfg* is internally inconsistent."""
    if cfg.default_presets and cfg.primary_repository is None:
        raise ConfigError(
            "default_presets is set but no repository is configured.\n"
            "  Add one with:  ccmm config add github.com/<owner>/<repo>"
        )
    for preset in cfg.default_presets:
        if not preset.endswith(".md"):
            raise ConfigError(f"Preset file names must end with .md: '{preset}'")
    if cfg.lock_timeout <= 0:
        raise ConfigError(f"lock_timeout must be positive, got {cfg.lock_timeout}")


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


def _cfg_from_dict(data: dict[str, Any], source: Path) -> CcmmConfig:
    """Build a *CcmmConfig* from a raw YAML dict."""
    cfg = CcmmConfig(source=source)
    cfg.default_preset_repositories = _as_str_list(data, "default_preset_repositories", source)
    cfg.default_presets = _as_str_list(data, "default_presets", source)
    if data.get("default_preset_repo"):
        cfg.default_preset_repo = str(data["default_preset_repo"])
    if "lock_timeout" in data:
        try:
            cfg.lock_timeout = float(data["lock_timeout"])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"lock_timeout in '{source}' must be a number.") from exc
    if data.get("version"):
        cfg.version = str(data["version"])
    return cfg


def _apply_env_overrides(cfg: CcmmConfig) -> CcmmConfig:
    if repo := os.environ.get("CCMM_DEFAULT_PRESET_REPO"):
        cfg.file_values.setdefault("default_preset_repo", cfg.default_preset_repo)
        cfg.default_preset_repo = repo
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(global_config_path: Path | None = None) -> CcmmConfig:
    """Load and return the *CcmmConfig*.

    Args:
        global_config_path: Override the config path (for testing). Defaults to
            ``$CCMM_HOME/config.yaml``.

    Returns:
        Validated *CcmmConfig* with env var overrides applied. A missing file
        yields the hardcoded defaults.

    Raises:
        ConfigError: If the file is not valid YAML, is not a mapping, contains
            credential-like keys, or fails validation.
    """
    path = global_config_path if global_config_path is not None else _default_path()

    if not path.exists():
        cfg = CcmmConfig()
    else:
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Config '{path}' is not valid YAML: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"Config '{path}' must be a mapping at the top level.")
        _check_no_credentials(raw, path)
        _warn_unknown_keys(raw, path)
        cfg = _cfg_from_dict(raw, path)

    cfg = _apply_env_overrides(cfg)
    validate_config(cfg)
    return cfg


def reload_config(cfg: CcmmConfig) -> CcmmConfig:
    """Re-read the file *cfg* was loaded from (or the default location)."""
    return load_config(cfg.source)


def save_config(cfg: CcmmConfig, global_config_path: Path | None = None) -> Path:
    """Write *cfg* to disk and return the path written."""
    path = global_config_path or cfg.source or _default_path()
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    path.write_text(
        "# ccmm global configuration. Never store tokens here.\n"
        + yaml.safe_dump(cfg.to_dict(), sort_keys=False),
        encoding="utf-8",
    )
    path.chmod(0o600)
    cfg.source = path
    return path


def ensure_global_config(global_config_path: Path | None = None) -> Path:
    """Create ``~/.ccmm/config.yaml`` with defaults if it does not exist.

    Creates the ccmm home with ``presets/`` and ``projects/`` (mode 0o700) and
    the config file with mode 0o600.

    Args:
        global_config_path: Override path (for testing).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _default_path()
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    (target.parent / "presets").mkdir(mode=0o700, exist_ok=True)
    (target.parent / "projects").mkdir(mode=0o700, exist_ok=True)

    if not target.exists():
        content = (
            "# ccmm global configuration.\n"
            "# NEVER store tokens here — use environment variables:\n"
            "#   export GITHUB_TOKEN=ghp_...\n"
            "\n"
            f'version: "{CONFIG_VERSION}"\n'
            "default_preset_repositories: []\n"
            "default_presets: []\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target


def _default_path() -> Path:
    return global_config_path()

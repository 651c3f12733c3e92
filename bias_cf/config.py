"""Runtime configuration for the bias-aware user-user CF model."""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError


CONFIG_SECTION = "bias_cf"


@dataclass(frozen=True)
class ModelConfig:
    k: int = 190  # neighbors kept per user
    shrink: float = 10.0  # significance shrinkage
    amp_factor: float = 1.3  # case amplification exponent
    num_iters: int = 8  # bias refinement passes
    alpha: float = 0.01  # learning rate
    reg: float = 0.02  # regularization
    fallback_mean: float = 3.5  # global mean when there is no training data

    def __post_init__(self) -> None:
        for name in ("shrink", "amp_factor", "alpha", "reg", "fallback_mean"):
            if not math.isfinite(getattr(self, name)):
                raise ConfigError(f"{name} must be finite, got {getattr(self, name)}")
        if self.k < 0:
            raise ConfigError(f"k must be >= 0, got {self.k}")
        if self.num_iters < 0:
            raise ConfigError(f"num_iters must be >= 0, got {self.num_iters}")
        if self.shrink < 0.0:
            raise ConfigError(f"shrink must be >= 0, got {self.shrink}")
        if self.amp_factor <= 0.0:
            raise ConfigError(f"amp_factor must be > 0, got {self.amp_factor}")
        if self.alpha <= 0.0:
            raise ConfigError(f"alpha must be > 0, got {self.alpha}")
        if self.reg < 0.0:
            raise ConfigError(f"reg must be >= 0, got {self.reg}")

    def with_overrides(self, **overrides: Any) -> "ModelConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return from_mapping(changes, base=self)


def _coerce(name: str, value: Any, kind: type) -> Any:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be {kind.__name__}, got bool")
    try:
        out = kind(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ConfigError(f"{name} must be {kind.__name__}, got {value!r}") from exc
    if kind is int and isinstance(value, float) and not value.is_integer():
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    return out


def from_mapping(raw: Mapping[str, Any], *, base: ModelConfig | None = None) -> ModelConfig:
    """Build a config from a plain mapping, rejecting unknown keys."""
    base = base or ModelConfig()
    known = {f.name: (int if f.type in ("int", int) else float) for f in fields(ModelConfig)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ConfigError(f"unknown {CONFIG_SECTION} config keys: {unknown}")
    changes = {name: _coerce(name, value, known[name]) for name, value in raw.items()}
    return replace(base, **changes)


def load_config(path: Path) -> ModelConfig:
    """Read the ``bias_cf`` section of a YAML config file.

    A file without the section yields the defaults.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config not found: {path}")
    try:
        obj = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse YAML config {path}: {exc}") from exc

    if obj is None:
        return ModelConfig()
    if not isinstance(obj, dict):
        raise ConfigError(f"Expected YAML mapping at {path}, got {type(obj).__name__}")

    section = obj.get(CONFIG_SECTION, {})
    if section is None:
        return ModelConfig()
    if not isinstance(section, dict):
        raise ConfigError(f"`{CONFIG_SECTION}` in {path} must be a mapping")
    return from_mapping(section)

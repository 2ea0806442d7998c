"""
Configuration Loader Utility

Provides a singleton-style loader for the YAML configuration file with
support for named threshold profiles (e.g. one per model size).
Values from the file are merged over the built-in defaults and validated
before use.
"""

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from segrefine.utils.config_validator import ConfigValidationError, validate_config, validate_refinement_section
from segrefine.utils.constants import DefaultThresholds, ModelDefaults
from segrefine.utils.logger_utils import system_logger

_config = None
_config_path = None

DEFAULT_CONFIG_PATH = Path.home() / "segrefine" / "config" / "config.yaml"


def deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries, with override values taking precedence.

    Parameters:
    - base: Base dictionary
    - override: Override dictionary

    Returns:
    - Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def default_config() -> Dict[str, Any]:
    """Built-in configuration used when no file overrides it."""
    return {
        "refinement": {
            "common_threshold": DefaultThresholds.COMMON_SCORE,
            "class_thresholds": dict(DefaultThresholds.CLASS_SCORES),
            "box_iou_threshold": DefaultThresholds.BOX_IOU,
            "mask_iou_threshold": DefaultThresholds.MASK_IOU,
            "overlap_threshold": DefaultThresholds.OVERLAP,
            "min_box_size": DefaultThresholds.MIN_BOX_SIZE,
        },
        "model": {
            "infer_size": ModelDefaults.INFER_SIZE,
        },
        "profiles": {},
    }


def resolve_config_path(config_path=None) -> Path:
    """
    Resolve which configuration file to read.

    Order: explicit argument, ``SEGREFINE_CONFIG`` environment variable,
    ``~/segrefine/config/config.yaml``.
    """
    if config_path is not None:
        return Path(config_path).expanduser().resolve()
    env_path = os.environ.get("SEGREFINE_CONFIG")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return DEFAULT_CONFIG_PATH


def get_config(config_path=None) -> Dict[str, Any]:
    """
    Load, merge and validate the configuration once per path.

    A missing default file is not an error: the built-in defaults are used.
    A missing explicitly requested file raises ``FileNotFoundError``.
    """
    global _config, _config_path

    path = resolve_config_path(config_path)
    if _config is not None and _config_path == path:
        return _config

    raw_config = {}
    if path.exists():
        try:
            with open(path, "r") as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            system_logger.error(f"Error parsing configuration file: {e}")
            raise
        system_logger.info(f"Loaded configuration from {path}")
    elif config_path is not None or os.environ.get("SEGREFINE_CONFIG"):
        system_logger.error(f"Configuration file not found: {path}")
        raise FileNotFoundError(f"Configuration file not found: {path}")
    else:
        system_logger.debug(f"No configuration file at {path}, using defaults")

    if not isinstance(raw_config, dict):
        raise ConfigValidationError(f"Configuration root must be a mapping: {path}")

    merged = deep_merge(default_config(), raw_config)
    _replace_class_thresholds(merged["refinement"], raw_config.get("refinement"))
    _config = validate_config(merged)
    _config_path = path
    return _config


def _replace_class_thresholds(target, override) -> None:
    # Override tables replace the defaults instead of merging into them
    if isinstance(target, dict) and isinstance(override, dict) and "class_thresholds" in override:
        target["class_thresholds"] = dict(override["class_thresholds"] or {})


def reset_config_cache() -> None:
    """Forget the cached configuration so the next call re-reads the file."""
    global _config, _config_path
    _config = None
    _config_path = None


def list_profiles(config: Dict[str, Any]) -> list:
    """
    List the named threshold profiles of a configuration.

    Returns:
    - Sorted list of profile names
    """
    return sorted((config.get("profiles") or {}).keys())


@dataclass(frozen=True)
class RefinementSettings:
    """Thresholds and canvas geometry consumed by the refinement pipeline."""

    common_threshold: float = DefaultThresholds.COMMON_SCORE
    class_thresholds: Dict[int, float] = field(
        default_factory=lambda: dict(DefaultThresholds.CLASS_SCORES)
    )
    box_iou_threshold: float = DefaultThresholds.BOX_IOU
    mask_iou_threshold: float = DefaultThresholds.MASK_IOU
    overlap_threshold: float = DefaultThresholds.OVERLAP
    min_box_size: int = DefaultThresholds.MIN_BOX_SIZE
    infer_size: Optional[int] = None

    def effective_threshold(self, class_id: int) -> float:
        """Score threshold for ``class_id``: its override if present, else the common one."""
        return self.class_thresholds.get(int(class_id), self.common_threshold)

    @classmethod
    def from_config(cls, config: Dict[str, Any], profile: str = None) -> "RefinementSettings":
        """
        Build settings from a validated configuration.

        Parameters:
        - config: Configuration as returned by ``get_config``
        - profile: Optional profile name whose overrides are merged over
          the ``refinement`` section

        Returns:
        - RefinementSettings
        """
        refinement = copy.deepcopy(config["refinement"])
        if profile is not None:
            profiles = config.get("profiles") or {}
            if profile not in profiles:
                raise ConfigValidationError(
                    f"Unknown profile '{profile}'", details={"available": list_profiles(config)}
                )
            refinement = deep_merge(refinement, profiles[profile])
            _replace_class_thresholds(refinement, profiles[profile])
            validate_refinement_section(refinement)
            system_logger.debug(f"Applied refinement profile '{profile}'")

        class_thresholds = {
            int(class_id): float(threshold)
            for class_id, threshold in (refinement["class_thresholds"] or {}).items()
        }
        return cls(
            common_threshold=float(refinement["common_threshold"]),
            class_thresholds=class_thresholds,
            box_iou_threshold=float(refinement["box_iou_threshold"]),
            mask_iou_threshold=float(refinement["mask_iou_threshold"]),
            overlap_threshold=float(refinement["overlap_threshold"]),
            min_box_size=int(refinement["min_box_size"]),
            infer_size=config.get("model", {}).get("infer_size"),
        )

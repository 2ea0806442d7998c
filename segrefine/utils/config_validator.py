"""
Configuration schema validation utilities.

This module provides validation for the project configuration to ensure
all required fields are present and have valid values.
"""

from typing import Dict, Any

from segrefine.utils.exceptions import ConfigurationError
from segrefine.utils.logger_utils import system_logger


class ConfigValidationError(ConfigurationError):
    """Custom exception for configuration validation errors."""
    pass


# Configuration schema definition
REQUIRED_SECTIONS = {
    'refinement': dict,
    'model': dict,
}

REQUIRED_REFINEMENT_KEYS = [
    'common_threshold',
    'class_thresholds',
    'box_iou_threshold',
    'mask_iou_threshold',
    'overlap_threshold',
    'min_box_size',
]

RATIO_KEYS = [
    'common_threshold',
    'box_iou_threshold',
    'mask_iou_threshold',
    'overlap_threshold',
]

# Optional sections that won't trigger warnings
OPTIONAL_SECTIONS = ['profiles', 'paths']


def _validate_ratio(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigValidationError(f"'{name}' must be a number, got {type(value).__name__}")
    if not 0.0 <= value <= 1.0:
        raise ConfigValidationError(f"'{name}' must be within [0, 1], got {value}")


def validate_refinement_section(refinement: Dict[str, Any]) -> None:
    """
    Validates the ``refinement`` section of a configuration.

    Args:
        refinement (dict): Refinement settings

    Raises:
        ConfigValidationError: If a key is missing or out of range
    """
    for key in REQUIRED_REFINEMENT_KEYS:
        if key not in refinement:
            raise ConfigValidationError(f"Missing required refinement key: {key}")

    for key in RATIO_KEYS:
        _validate_ratio(key, refinement[key])

    class_thresholds = refinement['class_thresholds'] or {}
    if not isinstance(class_thresholds, dict):
        raise ConfigValidationError("'class_thresholds' must be a mapping of class id to threshold")
    for class_id, threshold in class_thresholds.items():
        try:
            int(class_id)
        except (TypeError, ValueError):
            raise ConfigValidationError(f"Class threshold key must be an integer class id, got {class_id!r}")
        _validate_ratio(f"class_thresholds[{class_id}]", threshold)

    min_box_size = refinement['min_box_size']
    if isinstance(min_box_size, bool) or not isinstance(min_box_size, int) or min_box_size < 0:
        raise ConfigValidationError(f"'min_box_size' must be a non-negative integer, got {min_box_size!r}")


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validates the configuration dictionary.

    Args:
        config (dict): Raw configuration dictionary

    Returns:
        dict: Validated configuration dictionary

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ConfigValidationError("Configuration root must be a mapping")

    # Check required top-level sections
    for section, expected_type in REQUIRED_SECTIONS.items():
        if section not in config:
            raise ConfigValidationError(f"Missing required configuration section: {section}")
        if not isinstance(config[section], expected_type):
            raise ConfigValidationError(
                f"Configuration section '{section}' must be of type {expected_type.__name__}"
            )

    for section in config:
        if section not in REQUIRED_SECTIONS and section not in OPTIONAL_SECTIONS:
            system_logger.warning(f"Unknown configuration section ignored: {section}")

    validate_refinement_section(config['refinement'])

    infer_size = config['model'].get('infer_size')
    if infer_size is not None and (not isinstance(infer_size, int) or infer_size <= 0):
        raise ConfigValidationError(f"'model.infer_size' must be a positive integer, got {infer_size!r}")

    profiles = config.get('profiles') or {}
    if not isinstance(profiles, dict):
        raise ConfigValidationError("'profiles' must be a mapping of profile name to overrides")
    for name, overrides in profiles.items():
        if not isinstance(overrides, dict):
            raise ConfigValidationError(f"Profile '{name}' must be a mapping")

    system_logger.debug("Configuration validation passed")
    return config

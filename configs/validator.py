"""Configuration validation using JSON Schema."""

from __future__ import annotations

from typing import Any, Dict

import jsonschema
from jsonschema import Draft7Validator, validators

from exceptions import ConfigValidationError
from log_config.logger import get_logger

logger = get_logger(__name__)

CAPTURE_BACKENDS = ["any", "dshow", "msmf", "v4l2", "avfoundation", "gstreamer"]

# JSON Schema for default.yaml configuration
CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["capture", "encoder", "recording"],
    "properties": {
        "capture": {
            "type": "object",
            "required": ["default_fps"],
            "properties": {
                "backend": {"type": "string", "enum": CAPTURE_BACKENDS, "default": "any"},
                "default_fps": {"type": "number", "exclusiveMinimum": 0, "maximum": 240},
                "open_timeout_s": {"type": "number", "exclusiveMinimum": 0, "maximum": 60, "default": 5.0},
                "release_timeout_s": {"type": "number", "exclusiveMinimum": 0, "maximum": 60, "default": 2.0},
                "max_consecutive_empty_frames": {"type": ["integer", "null"], "minimum": 1, "default": None},
            },
            "additionalProperties": False,
        },
        "encoder": {
            "type": "object",
            "required": ["containers"],
            "properties": {
                "containers": {
                    "type": "object",
                    "minProperties": 1,
                    "propertyNames": {"pattern": "^[a-z0-9]+$"},
                    "additionalProperties": {
                        "type": "array",
                        "items": {"type": "string", "minLength": 4, "maxLength": 4},
                        "minItems": 1,
                    },
                },
                "color": {"type": "boolean", "default": True},
            },
            "additionalProperties": False,
        },
        "recording": {
            "type": "object",
            "properties": {
                "progress_interval": {"type": "integer", "minimum": 1, "default": 30},
            },
            "additionalProperties": False,
        },
        "preview": {
            "type": "object",
            "properties": {
                "enabled": {"type": "boolean", "default": True},
                "window_title": {"type": "string", "minLength": 1},
                "stop_keys": {"type": "string", "minLength": 1},
            },
            "additionalProperties": False,
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {
                    "type": "string",
                    "enum": ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"],
                },
                "log_dir": {"type": ["string", "null"]},
            },
            "additionalProperties": False,
        },
    },
}


def extend_with_default(validator_class):
    """Extend JSON Schema validator to set default values."""
    validate_properties = validator_class.VALIDATORS["properties"]

    def set_defaults(validator, properties, instance, schema):
        for prop, subschema in properties.items():
            if "default" in subschema:
                instance.setdefault(prop, subschema["default"])

        for error in validate_properties(validator, properties, instance, schema):
            yield error

    return validators.extend(validator_class, {"properties": set_defaults})


DefaultValidatingValidator = extend_with_default(Draft7Validator)


def validate_config(config: Dict[str, Any]) -> None:
    """Validate configuration against JSON Schema.

    Missing optional keys are filled in with their schema defaults.

    Args:
        config: Configuration dictionary

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ConfigValidationError(
            "Configuration root must be a mapping",
            validation_errors=[f"root: expected mapping, got {type(config).__name__}"],
        )

    try:
        validator = DefaultValidatingValidator(CONFIG_SCHEMA)
        errors = list(validator.iter_errors(config))

        if errors:
            error_messages = []
            for error in errors:
                path = " -> ".join(str(p) for p in error.path) if error.path else "root"
                error_messages.append(f"{path}: {error.message}")

            logger.error(f"Configuration validation failed with {len(errors)} errors")
            for msg in error_messages:
                logger.error(f"  - {msg}")

            raise ConfigValidationError(
                f"Configuration validation failed with {len(errors)} error(s). See logs for details.",
                validation_errors=error_messages,
            )

        logger.debug("Configuration validation passed")

    except jsonschema.exceptions.SchemaError as e:
        logger.error(f"Invalid schema: {e}")
        raise ConfigValidationError(f"Invalid schema definition: {e}")


__all__ = ["validate_config", "CONFIG_SCHEMA", "CAPTURE_BACKENDS"]

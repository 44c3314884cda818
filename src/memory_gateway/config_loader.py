# config_loader.py
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Union

import chardet
import yaml
from loguru import logger
from pydantic import ValidationError

from .config import GatewayConfig
from .core.exceptions import ConfigurationError
from .env_config import EnvConfig


def configure_logging(level: Optional[str] = None) -> None:
    """
    Replace loguru's default handler with a stderr handler at ``level``.

    Args:
        level: Log level name; ``MEMORY_GATEWAY_LOG_LEVEL`` when omitted.
    """
    logger.remove()
    logger.add(sys.stderr, level=(level or EnvConfig().log_level).upper())


def read_yaml(config_path: str) -> Dict[str, Any]:
    """
    Read the YAML configuration file with ``${VAR}`` environment variable
    substitution and guessed encoding.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Configuration data as a dictionary (empty for an empty file).

    Raises:
        FileNotFoundError: If the configuration file is not found.
        ConfigurationError: If the file cannot be read or is not a mapping.
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    content = load_text_file_with_guess_encoding(config_path)
    if content is None:
        raise ConfigurationError(
            f"Failed to read configuration file: {config_path}", path=config_path
        )

    pattern = re.compile(r"\$\{(\w+)\}")

    def replacer(match):
        return os.getenv(match.group(1), match.group(0))

    content = pattern.sub(replacer, content)

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        logger.critical(f"Error parsing YAML file: {e}")
        raise

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Invalid config format in {config_path}, expected a mapping",
            path=config_path,
        )
    return data


def _format_validation_error(error: ValidationError) -> str:
    """Format a pydantic ValidationError as one readable line per problem."""
    error_messages = []

    for err in error.errors():
        location = " -> ".join(str(loc) for loc in err["loc"])
        error_type = err["type"]
        msg = err["msg"]
        input_value = err.get("input", "N/A")

        if error_type == "string_type":
            error_messages.append(
                f"  - '{location}': expected transform source as a string, "
                f"got {input_value!r}"
            )
        elif error_type in ("bool_type", "bool_parsing"):
            error_messages.append(
                f"  - '{location}': expected true/false, got {input_value!r}"
            )
        elif "greater_than" in error_type or "less_than" in error_type:
            error_messages.append(f"  - '{location}': value out of range. {msg}")
        elif error_type == "value_error":
            error_messages.append(f"  - '{location}': {msg}")
        else:
            error_messages.append(f"  - '{location}': {msg} (type: {error_type})")

    return "\n".join(error_messages)


def validate_config(config_data: dict) -> GatewayConfig:
    """
    Validate configuration data against the GatewayConfig model.

    Args:
        config_data: Configuration dictionary

    Returns:
        Validated GatewayConfig

    Raises:
        ValidationError: If the data does not validate. A readable summary
            is logged at critical level first.
    """
    try:
        return GatewayConfig.model_validate(config_data)
    except ValidationError as e:
        logger.critical(
            "Memory gateway configuration is invalid:\n"
            f"{_format_validation_error(e)}"
        )
        logger.debug(f"Configuration data keys: {list(config_data.keys())}")
        raise


def load_config(
    config_path: Optional[str] = None,
    env: Optional[EnvConfig] = None,
) -> GatewayConfig:
    """
    Load, override and validate the gateway configuration.

    Precedence: explicit ``config_path``, then ``MEMORY_GATEWAY_CONFIG``.
    A missing file yields the defaults. Environment overrides
    (``MEMORY_GATEWAY_TRANSFORM_TIMEOUT``, ``MEMORY_GATEWAY_TRACE``) are
    applied on top of the file.
    """
    env = env or EnvConfig()
    path = config_path or env.config_path

    if os.path.exists(path):
        data = read_yaml(path)
    else:
        logger.warning(f"Config file not found at {path}, using defaults")
        data = {}

    if env.transform_timeout is not None:
        transform = dict(data.get("transform") or {})
        transform.pop("timeoutSeconds", None)
        transform["timeout_seconds"] = env.transform_timeout
        data["transform"] = transform
    if env.trace_enabled is not None:
        data.pop("traceEnabled", None)
        data["trace_enabled"] = env.trace_enabled

    return validate_config(data)


def load_text_file_with_guess_encoding(file_path: str) -> str | None:
    """
    Load a text file with guessed encoding.

    Returns:
        The file content, or None when no encoding could decode it.
    """
    encodings = ["utf-8", "utf-8-sig", "gbk", "gb2312", "ascii", "cp936"]

    for encoding in encodings:
        try:
            with open(file_path, "r", encoding=encoding) as file:
                return file.read()
        except UnicodeDecodeError:
            continue

    try:
        with open(file_path, "rb") as file:
            raw_data = file.read()
        detected = chardet.detect(raw_data)
        if detected["encoding"]:
            return raw_data.decode(detected["encoding"])
    except (OSError, UnicodeDecodeError, LookupError) as e:
        logger.error(f"Error detecting encoding for config file {file_path}: {e}")
    return None


def save_config(config: GatewayConfig, config_path: Union[str, Path]) -> None:
    """
    Save the configuration to YAML using the host's camelCase field names.

    Args:
        config: The configuration to save.
        config_path: Destination file.
    """
    config_data = config.model_dump(by_alias=True, mode="json")

    try:
        with open(Path(config_path), "w", encoding="utf-8") as f:
            yaml.safe_dump(config_data, f, allow_unicode=True, sort_keys=False)
    except yaml.YAMLError as e:
        logger.error(f"Error writing YAML file: {e}")
        raise

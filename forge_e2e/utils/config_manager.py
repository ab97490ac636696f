"""
Configuration manager with JSON schema validation

Loads the deployment configuration for the Forge E2E workflow, validates it
against a JSON schema and applies environment variable overrides.

Design Notes:
- Uses jsonschema for configuration validation
- Every key is optional; DeployConfig supplies the defaults
- Environment variable overrides (FORGE_E2E_<KEY>, FORGE_E2E_ANVIL_<KEY>) for CI
- Overrides are applied before validation so bad overrides are reported too
"""

import json
import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

import jsonschema

from .exceptions import ConfigurationError, ErrorCodes

LOG = logging.getLogger(__name__)

ENV_PREFIX = "FORGE_E2E_"

# Anvil's well-known development mnemonic
DEFAULT_MNEMONIC = "test test test test test test test test test test test junk"

TOP_LEVEL_KEYS = (
    "project_dir", "script", "token_contract", "counter_contract", "build", "rpc_timeout",
)
ANVIL_KEYS = ("port", "mnemonic", "startup_timeout")


@dataclass
class ValidationResult:
    """Result of configuration validation"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    validated_config: Optional[Dict[str, Any]] = None


@dataclass
class AnvilConfiguration:
    """Settings for the locally started node"""
    port: int = 8545
    mnemonic: str = DEFAULT_MNEMONIC
    startup_timeout: float = 10.0

    @property
    def rpc_url(self) -> str:
        return f"http://localhost:{self.port}"


@dataclass
class DeployConfig:
    """Validated deployment configuration"""
    project_dir: Path = field(default_factory=lambda: Path("."))
    script: str = "DeployCounter"
    token_contract: str = "ERC20FixedSupply"
    counter_contract: str = "Counter"
    build: bool = False
    rpc_timeout: float = 10.0
    anvil: AnvilConfiguration = field(default_factory=AnvilConfiguration)

    @classmethod
    def from_dict(cls, config: Dict[str, Any], base_dir: Optional[Path] = None) -> "DeployConfig":
        """Build from a validated dictionary, resolving project_dir against base_dir"""
        anvil = AnvilConfiguration(**config.get("anvil", {}))
        values = {k: config[k] for k in TOP_LEVEL_KEYS if k in config}
        if "project_dir" in values:
            project_dir = Path(values["project_dir"]).expanduser()
            if base_dir is not None and not project_dir.is_absolute():
                project_dir = base_dir / project_dir
            values["project_dir"] = project_dir
        return cls(anvil=anvil, **values)


class ConfigManager:
    """
    Loads and validates deployment configuration files.
    """

    def __init__(self, config_dir: Path = None, schema_dir: Path = None):
        """
        Initialize configuration manager.

        Args:
            config_dir: Directory containing configuration files (default: current directory)
            schema_dir: Directory containing JSON schemas (default: bundled configs/schemas/)
        """
        if config_dir is None:
            config_dir = Path.cwd()
        if schema_dir is None:
            schema_dir = Path(__file__).parent.parent / "configs" / "schemas"

        self.config_dir = Path(config_dir)
        self.schema_dir = Path(schema_dir)

        self._schemas: Dict[str, Dict[str, Any]] = {}

    def _load_schema(self, schema_name: str) -> Dict[str, Any]:
        """Load a JSON schema from file or cache"""
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_file = self.schema_dir / f"{schema_name}_schema.json"
        if not schema_file.exists():
            raise ConfigurationError(
                f"Schema file not found: {schema_file}",
                config_file=str(schema_file),
                code=ErrorCodes.CONFIG_FILE_NOT_FOUND
            )

        try:
            with open(schema_file, 'r') as f:
                schema = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in schema file {schema_file}: {e}",
                config_file=str(schema_file),
                code=ErrorCodes.CONFIG_VALIDATION_FAILED
            )
        self._schemas[schema_name] = schema
        return schema

    def _validate_config(self, config: Dict[str, Any], schema: Dict[str, Any]) -> ValidationResult:
        """Validate configuration against a schema, collecting every error"""
        validator = jsonschema.Draft7Validator(schema)
        errors = []
        for error in sorted(validator.iter_errors(config), key=lambda e: list(e.path)):
            if error.path:
                path = " -> ".join(str(p) for p in error.path)
                errors.append(f"'{path}' {error.message}")
            else:
                errors.append(error.message)

        if errors:
            return ValidationResult(is_valid=False, errors=errors)
        return ValidationResult(is_valid=True, validated_config=config)

    @staticmethod
    def _get_env_override(key: str, default: Any = None) -> Any:
        """Get environment variable override, JSON-decoded when possible"""
        env_value = os.getenv(f"{ENV_PREFIX}{key.upper()}")
        if env_value is None:
            return default
        try:
            return json.loads(env_value)
        except json.JSONDecodeError:
            return env_value

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration"""
        result = json.loads(json.dumps(config))

        for key in TOP_LEVEL_KEYS:
            value = self._get_env_override(key)
            if value is not None:
                LOG.debug(f"Override {key} from environment")
                # project_dir and script are always strings even if they look like JSON
                result[key] = str(value) if key in ("project_dir", "script") else value

        anvil = result.get("anvil", {})
        for key in ANVIL_KEYS:
            value = self._get_env_override(f"ANVIL_{key}")
            if value is not None:
                LOG.debug(f"Override anvil.{key} from environment")
                anvil[key] = value
        if anvil:
            result["anvil"] = anvil

        return result

    def validate(self, config: Dict[str, Any], source: str = "configuration") -> Dict[str, Any]:
        """
        Validate a configuration dictionary against the deploy schema.

        Raises:
            ConfigurationError: If the configuration does not match the schema
        """
        schema = self._load_schema("deploy")
        validation = self._validate_config(config, schema)
        if not validation.is_valid:
            error_msg = f"Configuration validation failed for {source}:\n"
            error_msg += "\n".join(f"  - {error}" for error in validation.errors)
            raise ConfigurationError(
                error_msg,
                config_file=source,
                code=ErrorCodes.CONFIG_VALIDATION_FAILED
            )
        return config

    def load_config(self, filename: str, apply_env_overrides: bool = True) -> Dict[str, Any]:
        """
        Load and validate a configuration file.

        Args:
            filename: Configuration filename relative to config_dir (or absolute)
            apply_env_overrides: Whether to apply environment variable overrides

        Returns:
            Validated configuration dictionary

        Raises:
            ConfigurationError: If configuration is invalid or missing
        """
        config_file = self.config_dir / filename

        if not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}",
                config_file=str(config_file),
                code=ErrorCodes.CONFIG_FILE_NOT_FOUND
            )

        try:
            with open(config_file, 'r') as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in configuration file {config_file}: {e}",
                config_file=str(config_file),
                code=ErrorCodes.CONFIG_VALIDATION_FAILED
            )

        if apply_env_overrides:
            config = self._apply_env_overrides(config)

        return self.validate(config, str(config_file))

    def load_deploy_config(self, filename: Optional[str] = None) -> DeployConfig:
        """
        Load the deployment configuration.

        Without a filename only the defaults and environment overrides are
        used. A relative project_dir in a file is resolved against the
        file's directory.

        Returns:
            Validated DeployConfig object
        """
        if filename is None:
            config = self.validate(self._apply_env_overrides({}), "environment")
            return DeployConfig.from_dict(config)

        config = self.load_config(filename)
        config_file = self.config_dir / filename
        return DeployConfig.from_dict(config, base_dir=config_file.parent)

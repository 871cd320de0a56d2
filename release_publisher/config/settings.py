"""
Configuration system using Pydantic for type-safe settings management.

Settings describe what does not change between releases: which catalog
repositories receive pull requests, the operator's directory layout inside
them, and client tuning. Per-release inputs (version, token, artifact paths)
live in ``ReleaseRequest`` instead.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from release_publisher.exceptions import ConfigurationError
from release_publisher.models.domain import RepositoryRef

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class TargetRepository(BaseModel):
    """An upstream catalog repository that receives a release pull request.

    The fork is expected under the caller's fork organization with the same
    repository name.
    """

    org: str = Field(..., min_length=1, description="Upstream organization")
    name: str = Field(..., min_length=1, description="Upstream repository name")
    label: str = Field(..., min_length=1, description="Human-readable name used in output and errors")

    @property
    def upstream(self) -> RepositoryRef:
        """Get the upstream repository reference."""
        return RepositoryRef(self.org, self.name)

    def fork(self, fork_org: str) -> RepositoryRef:
        """Get the fork of this repository under ``fork_org``."""
        return RepositoryRef(fork_org, self.name)


def _default_targets() -> list[TargetRepository]:
    return [
        TargetRepository(org="k8s-operatorhub", name="community-operators", label="Kubernetes"),
        TargetRepository(org="redhat-openshift-ecosystem", name="community-operators-prod", label="OpenShift"),
    ]


class ReleaseSettings(BaseSettings):
    """Release publishing settings.

    Values come from keyword arguments, ``RELEASE_*`` environment variables
    or a YAML file loaded with :meth:`from_yaml`.
    """

    model_config = SettingsConfigDict(
        env_prefix="RELEASE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    default_branch: str = Field(default="main", min_length=1, description="Default branch of upstream and fork")
    operator_name: str = Field(
        default="ibmcloud-operator", min_length=1, description="Directory under operators/ in the catalogs"
    )
    csv_prefix: str = Field(
        default="ibmcloud_operator", min_length=1, description="File name prefix of the cluster service version"
    )
    targets: list[TargetRepository] = Field(
        default_factory=_default_targets, min_length=1, description="Catalog repositories, processed in order"
    )
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    log_level: str = Field(default="INFO", description="Minimum log level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalize the log level to an upper-case standard level name."""
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return level

    @property
    def operator_dir(self) -> str:
        """Get the operator's directory inside a catalog repository."""
        return f"operators/{self.operator_name}"

    @property
    def package_path(self) -> str:
        """Get the shared, non-version-scoped package index path."""
        return f"{self.operator_dir}/{self.operator_name}.package.yaml"

    def version_dir(self, bare_version: str) -> str:
        """Get the version-scoped directory for a release."""
        return f"{self.operator_dir}/{bare_version}"

    def csv_path(self, version: str, bare_version: str) -> str:
        """Get the cluster service version path for a release."""
        return f"{self.version_dir(bare_version)}/{self.csv_prefix}.{version}.clusterserviceversion.yaml"

    @classmethod
    def from_yaml(cls, config_path: str) -> ReleaseSettings:
        """Load settings from YAML file with environment variable interpolation.

        Supports ${VAR_NAME} and ${VAR_NAME:-default} substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            ReleaseSettings instance

        Raises:
            ConfigurationError: If config file is invalid or missing required fields
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            yaml_content = config_file.read_text()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e

        if config_dict is None:
            config_dict = {}
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        try:
            return cls(**config_dict)
        except Exception as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Interpolate ${VAR_NAME} placeholders with environment variables.

        YAML comment lines are left unchanged.

        Raises:
            ValueError: If a required environment variable is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            elif default_value is not None:
                return default_value
            else:
                raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))

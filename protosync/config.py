"""
Configuration loader for protosync.

Reads protosync.yaml, which names the upstream repository, the namespace to
collect, the workspace layout, the compiler command and the versions to build.
Relative paths resolve against the directory holding the config file.
"""
import os
from pathlib import Path
from typing import List, Optional, Sequence

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from protosync.codegen.identifiers import is_plain_identifier
from protosync.compiler import DEFAULT_COMMAND, DEFAULT_INCLUDE_FLAG

DEFAULT_CONFIG_FILE = "protosync.yaml"
CONFIG_ENV_VAR = "PROTOSYNC_CONFIG"


class ConfigError(Exception):
    """Raised when the configuration is invalid."""
    pass


class Version(BaseModel):
    """A named snapshot of the upstream repository."""
    model_config = ConfigDict(frozen=True)

    ident: str = Field(..., description="Module name for this version, e.g. v0_34")
    commitish: str = Field(..., description="Branch, tag or commit id to build from")

    @field_validator("ident")
    @classmethod
    def ident_is_identifier(cls, value: str) -> str:
        if not is_plain_identifier(value):
            raise ValueError(f"{value!r} is not a valid module identifier (ASCII, not a Rust keyword)")
        return value

    @field_validator("commitish")
    @classmethod
    def commitish_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("commitish must not be empty")
        return value.strip()


class WorkspaceConfig(BaseModel):
    """Directory layout; module_dir and aggregator_path default from the prefix."""
    model_config = ConfigDict(extra="forbid")

    checkout_dir: str = "target/upstream"
    compile_dir: str = "target/compiled"
    generated_dir: str = "src/prost"
    module_dir: Optional[str] = None
    aggregator_path: Optional[str] = None


class CompilerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    command: List[str] = Field(default_factory=lambda: list(DEFAULT_COMMAND))
    include_flag: str = DEFAULT_INCLUDE_FLAG

    @field_validator("command")
    @classmethod
    def command_not_empty(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("compiler command must not be empty")
        return value


class PipelineConfig(BaseModel):
    """Complete pipeline configuration."""
    model_config = ConfigDict(extra="forbid")

    repository: str
    namespace_prefix: str
    delimiter: str = "."
    schema_extension: str = "proto"
    generated_suffix: str = ".rs"
    proto_roots: List[str] = Field(default_factory=lambda: ["proto"])
    include_roots: List[str] = Field(default_factory=lambda: ["proto", "third_party/proto"])
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    compiler: CompilerConfig = Field(default_factory=CompilerConfig)
    versions: List[Version]
    base_dir: Path = Field(default_factory=Path.cwd, exclude=True)

    @field_validator("repository", "namespace_prefix", "delimiter")
    @classmethod
    def not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("versions")
    @classmethod
    def versions_unique(cls, value: List[Version]) -> List[Version]:
        if not value:
            raise ValueError("at least one version is required")
        idents = [version.ident for version in value]
        duplicates = sorted({ident for ident in idents if idents.count(ident) > 1})
        if duplicates:
            raise ValueError(f"duplicate version idents: {', '.join(duplicates)}")
        return value

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> 'PipelineConfig':
        """
        Load configuration from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigError: If the content is not a mapping or fails validation
        """
        yaml_path = Path(yaml_path).expanduser()
        if not yaml_path.exists():
            raise FileNotFoundError(f"protosync config not found: {yaml_path}")

        with open(yaml_path, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {yaml_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Invalid config in {yaml_path}: must be a YAML dict")

        return cls.from_dict(data, base_dir=yaml_path.parent.resolve(), source=str(yaml_path))

    @classmethod
    def from_dict(cls, data: dict, base_dir: Path, source: str = "<config>") -> 'PipelineConfig':
        try:
            return cls(**{**data, "base_dir": base_dir})
        except ValidationError as e:
            problems = [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            ]
            raise ConfigError(f"Invalid config in {source}:\n  " + "\n  ".join(problems)) from e

    # ------------------------------------------------------------------
    # Paths

    def resolve_path(self, value: str) -> Path:
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    @property
    def checkout_dir(self) -> Path:
        return self.resolve_path(self.workspace.checkout_dir)

    @property
    def compile_dir(self) -> Path:
        return self.resolve_path(self.workspace.compile_dir)

    @property
    def generated_dir(self) -> Path:
        return self.resolve_path(self.workspace.generated_dir)

    @property
    def module_dir(self) -> Path:
        return self.resolve_path(self.workspace.module_dir or f"src/{self.namespace_prefix}")

    @property
    def aggregator_path(self) -> Path:
        return self.resolve_path(
            self.workspace.aggregator_path or f"src/{self.namespace_prefix}.rs"
        )

    def version_dir(self, version: Version) -> Path:
        """Directory holding the collected files of one version."""
        return self.generated_dir / version.ident

    def proto_paths(self) -> List[Path]:
        return [self.checkout_dir / root for root in self.proto_roots]

    def include_paths(self) -> List[Path]:
        return [self.checkout_dir / root for root in self.include_roots]

    def select_versions(self, idents: Optional[Sequence[str]] = None) -> List[Version]:
        """
        Versions to build, in config order.

        Raises:
            ConfigError: If an ident is not configured
        """
        if not idents:
            return list(self.versions)

        known = {version.ident for version in self.versions}
        unknown = [ident for ident in idents if ident not in known]
        if unknown:
            raise ConfigError(f"Unknown version(s): {', '.join(unknown)}")

        wanted = set(idents)
        return [version for version in self.versions if version.ident in wanted]


def resolve_config_path(config_arg: Optional[str] = None) -> Path:
    """Config path from the argument, $PROTOSYNC_CONFIG, or ./protosync.yaml."""
    if config_arg:
        return Path(config_arg)
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path(DEFAULT_CONFIG_FILE)


def load_config(config_arg: Optional[str] = None) -> PipelineConfig:
    """Load the pipeline configuration."""
    return PipelineConfig.from_yaml(resolve_config_path(config_arg))

"""
Per-version pipeline orchestration.

For every configured version:
1. Sync the upstream checkout to the version's commitish
2. Discover schema files under the proto roots
3. Compile them with the external compiler
4. Collect the namespace files into the version's generated dir
5. Write the version's module file

Finally the aggregator is rewritten over all configured versions.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from protosync.codegen.tree import ModuleTreeGenerator
from protosync.collector import collect
from protosync.compiler import ProtoCompiler
from protosync.config import PipelineConfig, Version
from protosync.discovery import discover
from protosync.vcs.resolver import ResolvedRef
from protosync.vcs.sync import RepoSync

logger = logging.getLogger(__name__)


@dataclass
class VersionResult:
    """Outcome of building one version."""
    version: Version
    resolved: ResolvedRef
    schema_count: int
    collected: List[Path] = field(default_factory=list)
    module_path: Optional[Path] = None


class Pipeline:
    """Runs the sync -> compile -> collect -> generate pipeline."""

    def __init__(
        self,
        config: PipelineConfig,
        repo_sync: RepoSync = None,
        compiler: ProtoCompiler = None,
        generator: ModuleTreeGenerator = None
    ):
        self.config = config
        self.repo_sync = repo_sync or RepoSync()
        self.compiler = compiler or ProtoCompiler(
            command=config.compiler.command,
            include_flag=config.compiler.include_flag
        )
        self.generator = generator or ModuleTreeGenerator(
            repository=config.repository,
            namespace_prefix=config.namespace_prefix,
            suffix=config.generated_suffix,
            delimiter=config.delimiter
        )

    def run(self, only: Optional[Sequence[str]] = None) -> List[VersionResult]:
        """
        Build the selected versions (all by default) and rewrite the aggregator.

        Args:
            only: Version idents to build; config order is kept

        Returns:
            One VersionResult per built version
        """
        versions = self.config.select_versions(only)
        results = []
        for version in versions:
            results.append(self.build_version(version))

        self.write_aggregator()
        return results

    def build_version(self, version: Version) -> VersionResult:
        config = self.config
        logger.info(f"Building {config.namespace_prefix} {version.ident} from {version.commitish}")

        resolved = self.repo_sync.sync(config.checkout_dir, config.repository, version.commitish)

        proto_files = discover(config.proto_paths(), extension=config.schema_extension)
        logger.info(f"Found {len(proto_files)} schema files")

        self.compiler.compile(proto_files, config.include_paths(), config.compile_dir)

        version_dir = config.version_dir(version)
        collected = collect(
            config.compile_dir, version_dir, config.namespace_prefix, config.delimiter
        )

        module_path = self.generator.write_tree(version_dir, version, config.module_dir)

        return VersionResult(
            version=version,
            resolved=resolved,
            schema_count=len(proto_files),
            collected=collected,
            module_path=module_path
        )

    def regenerate_modules(self) -> List[Path]:
        """Rewrite module files and aggregator from already collected output."""
        paths = []
        for version in self.config.versions:
            paths.append(
                self.generator.write_tree(
                    self.config.version_dir(version), version, self.config.module_dir
                )
            )
        paths.append(self.write_aggregator())
        return paths

    def write_aggregator(self) -> Path:
        return self.generator.write_aggregator(self.config.versions, self.config.aggregator_path)

"""
Rust module file generation.

Per version, the collected compiler output is wrapped into nested `pub mod`
blocks that `include!` the generated files, followed by a `meta` module
recording where the sources came from. The aggregator declares every version
module and re-exports the last one.
"""
import logging
import os
from pathlib import Path, PurePosixPath
from typing import List, Sequence

from protosync.codegen.identifiers import module_name
from protosync.codegen.namespace import ModuleNode, NamespaceFile, build_tree
from protosync.config import Version

logger = logging.getLogger(__name__)

INDENT = "    "


class MissingCompiledOutput(Exception):
    """Raised when there are no compiled files to build a module tree from."""
    pass


def rust_string(value: str) -> str:
    """Quote value as a Rust string literal."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


class ModuleTreeGenerator:
    """Generates version module files and the aggregator."""

    def __init__(
        self,
        repository: str,
        namespace_prefix: str,
        suffix: str = ".rs",
        delimiter: str = "."
    ):
        """
        Args:
            repository: Upstream repository URL, recorded in the meta module
            namespace_prefix: Leading namespace token of generated file names
            suffix: Generated file suffix, including the dot
            delimiter: Namespace delimiter inside file names
        """
        self.repository = repository
        self.namespace_prefix = namespace_prefix
        self.suffix = suffix
        self.delimiter = delimiter

    def namespace_files(self, output_dir: Path) -> List[NamespaceFile]:
        """
        Parse every namespace file under output_dir, sorted by file name.

        Raises:
            MissingCompiledOutput: If output_dir is missing or has no namespace files
        """
        output_dir = Path(output_dir)
        if not output_dir.is_dir():
            raise MissingCompiledOutput(f"Compiled output directory not found: {output_dir}")

        names = set()
        for dirpath, _dirnames, filenames in os.walk(output_dir):
            for filename in filenames:
                if (Path(dirpath) / filename).is_file():
                    names.add(filename)

        files = []
        for name in sorted(names):
            parsed = NamespaceFile.parse(name, self.namespace_prefix, self.suffix, self.delimiter)
            if parsed is not None:
                files.append(parsed)

        if not files:
            raise MissingCompiledOutput(
                f"No {self.namespace_prefix}{self.delimiter}*{self.suffix} files in {output_dir}"
            )
        return files

    def generate_tree(self, output_dir: Path, version: Version, include_base: str) -> str:
        """
        Generate the module file for one version.

        Args:
            output_dir: Directory holding the collected files for version
            version: Version being generated
            include_base: Path prefix used in include! to reach output_dir
                from the module file

        Returns:
            Module file content
        """
        tree = build_tree(self.namespace_files(output_dir))
        base = str(PurePosixPath(include_base))

        content = f"//! {self.namespace_prefix} auto-generated sub-modules for {version.ident}\n"
        for name in sorted(tree.children):
            lines = self._render(tree.children[name], base, 0)
            content += "\n" + "\n".join(lines) + "\n"

        content += "\n" + self.meta_block(version)
        return content

    def _render(self, node: ModuleNode, include_base: str, depth: int) -> List[str]:
        tabs = INDENT * depth
        lines = [f"{tabs}pub mod {module_name(node.name)} {{"]
        for file_name in node.includes:
            include_path = rust_string(f"{include_base}/{file_name}")
            lines.append(f"{tabs}{INDENT}include!({include_path});")
        for name in sorted(node.children):
            lines.extend(self._render(node.children[name], include_base, depth + 1))
        lines.append(f"{tabs}}}")
        return lines

    def meta_block(self, version: Version) -> str:
        return (
            "pub mod meta {\n"
            f"{INDENT}pub const REPOSITORY: &str = {rust_string(self.repository)};\n"
            f"{INDENT}pub const IDENT: &str = {rust_string(version.ident)};\n"
            f"{INDENT}pub const COMMITISH: &str = {rust_string(version.commitish)};\n"
            "}\n"
        )

    def generate_aggregator(self, versions: Sequence[Version]) -> str:
        """
        Declare every version module and re-export the last one.

        Raises:
            ValueError: If versions is empty
        """
        if not versions:
            raise ValueError("At least one version is required for the aggregator")

        lines = [f"pub mod {version.ident};" for version in versions]
        lines.append(f"pub use {versions[-1].ident}::*;")
        return "\n".join(lines) + "\n"

    def write_tree(
        self,
        output_dir: Path,
        version: Version,
        module_dir: Path,
        include_base: str = None
    ) -> Path:
        """
        Write <module_dir>/<ident>.rs for version.

        include_base defaults to the relative path from module_dir to
        output_dir.
        """
        module_dir = Path(module_dir)
        if include_base is None:
            include_base = Path(os.path.relpath(Path(output_dir), module_dir)).as_posix()

        content = self.generate_tree(output_dir, version, include_base)
        module_dir.mkdir(parents=True, exist_ok=True)
        target = module_dir / f"{version.ident}.rs"
        target.write_text(content, encoding="utf-8")
        logger.info(f"Wrote {self.namespace_prefix} module for {version.ident} to {target}")
        return target

    def write_aggregator(self, versions: Sequence[Version], path: Path) -> Path:
        content = self.generate_aggregator(versions)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.info(f"Wrote aggregator for {len(versions)} version(s) to {path}")
        return path

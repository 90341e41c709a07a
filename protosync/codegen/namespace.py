"""
Namespace parsing and the module tree.

A generated file such as `tendermint.abci.types.rs` sits at namespace path
abci -> types. Files are inserted into an explicit tree keyed by segment so
that shared prefixes produce exactly one container.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from protosync.codegen.identifiers import module_name


@dataclass(frozen=True)
class NamespaceFile:
    """
    A generated file and its namespace segments.

    segments are stored leaf-to-root; use `path` for root-to-leaf order.
    """
    file_name: str
    segments: Tuple[str, ...]

    @property
    def path(self) -> Tuple[str, ...]:
        return tuple(reversed(self.segments))

    @classmethod
    def parse(
        cls,
        file_name: str,
        namespace_prefix: str,
        suffix: str,
        delimiter: str = "."
    ) -> Optional['NamespaceFile']:
        """
        Parse a generated file name.

        Returns None for files that do not belong to the namespace (wrong
        prefix or suffix).

        Raises:
            ValueError: If the name belongs to the namespace but has an empty
                segment, e.g. "tendermint..rs", or a segment that cannot
                name a module
        """
        name_prefix = f"{namespace_prefix}{delimiter}"
        if not file_name.startswith(name_prefix) or not file_name.endswith(suffix):
            return None

        remainder = file_name[len(name_prefix):]
        if len(remainder) < len(suffix):
            raise ValueError(f"No namespace segments in {file_name!r}")
        remainder = remainder[:len(remainder) - len(suffix)]

        parts = remainder.split(delimiter)
        if any(not part for part in parts):
            raise ValueError(f"Empty namespace segment in {file_name!r}")
        for part in parts:
            module_name(part)

        return cls(file_name=file_name, segments=tuple(reversed(parts)))


@dataclass
class ModuleNode:
    """One named container in the module tree."""
    name: str
    children: Dict[str, 'ModuleNode'] = field(default_factory=dict)
    includes: List[str] = field(default_factory=list)

    def child(self, name: str) -> 'ModuleNode':
        node = self.children.get(name)
        if node is None:
            node = ModuleNode(name)
            self.children[name] = node
        return node

    def insert(self, namespace_file: NamespaceFile) -> 'ModuleNode':
        """Add a file at its namespace path; returns the leaf node."""
        node = self
        for segment in namespace_file.path:
            node = node.child(segment)
        node.includes.append(namespace_file.file_name)
        return node


def build_tree(files: Iterable[NamespaceFile]) -> ModuleNode:
    """Build the module tree; the returned root node is unnamed."""
    root = ModuleNode("")
    for namespace_file in files:
        root.insert(namespace_file)
    return root

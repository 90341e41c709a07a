"""
Unit tests for module file and aggregator generation.
"""
import re
import pytest
from pathlib import Path

from protosync.codegen.tree import MissingCompiledOutput, ModuleTreeGenerator, rust_string
from protosync.config import Version

REPO = "https://github.com/cometbft/cometbft"

MOD_OPEN = re.compile(r'^\s*pub mod ((?:r#)?\w+) \{$')
INCLUDE = re.compile(r'^\s*include!\("(.*)"\);$')
CONST = re.compile(r'^\s*pub const (\w+): &str = "(.*)";$')


def parse_modules(text: str) -> dict:
    """
    Parse generated Rust into nested dicts.

    Each module maps to {"mods": {...}, "includes": [...], "consts": {...}};
    a module declared twice at the same level is a parse error.
    """
    root = {"mods": {}, "includes": [], "consts": {}}
    stack = [root]
    for line in text.splitlines():
        if not line.strip() or line.startswith("//!"):
            continue
        opened = MOD_OPEN.match(line)
        if opened:
            name = opened.group(1)
            assert name not in stack[-1]["mods"], f"duplicate module {name}"
            node = {"mods": {}, "includes": [], "consts": {}}
            stack[-1]["mods"][name] = node
            stack.append(node)
            continue
        if line.strip() == "}":
            stack.pop()
            continue
        included = INCLUDE.match(line)
        if included:
            stack[-1]["includes"].append(included.group(1))
            continue
        const = CONST.match(line)
        if const:
            stack[-1]["consts"][const.group(1)] = const.group(2)
            continue
        raise AssertionError(f"unexpected line: {line!r}")
    assert len(stack) == 1, "unbalanced braces"
    return root


def make_output(path: Path, *names: str) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    for name in names:
        (path / name).write_text(f"// {name}\n")
    return path


@pytest.fixture
def generator():
    return ModuleTreeGenerator(repository=REPO, namespace_prefix="tendermint")


class TestGenerateTree:
    """Test per-version module generation."""

    def test_shared_outer_module(self, tmp_path):
        output = make_output(tmp_path / "prost" / "v1", "ns.a.b.rs", "ns.a.c.rs")
        generator = ModuleTreeGenerator(repository=REPO, namespace_prefix="ns")

        text = generator.generate_tree(output, Version(ident="v1", commitish="main"), "../prost/v1")
        tree = parse_modules(text)

        assert set(tree["mods"]) == {"a", "meta"}
        a = tree["mods"]["a"]
        assert set(a["mods"]) == {"b", "c"}
        assert a["mods"]["b"]["includes"] == ["../prost/v1/ns.a.b.rs"]
        assert a["mods"]["c"]["includes"] == ["../prost/v1/ns.a.c.rs"]

    def test_deep_nesting_and_indentation(self, tmp_path, generator):
        output = make_output(tmp_path / "out", "tendermint.crypto.keys.rs")

        text = generator.generate_tree(output, Version(ident="v0_34", commitish="v0.34.x"), "../prost/v0_34")

        assert (
            "pub mod crypto {\n"
            "    pub mod keys {\n"
            '        include!("../prost/v0_34/tendermint.crypto.keys.rs");\n'
            "    }\n"
            "}\n"
        ) in text
        assert text.startswith("//! tendermint auto-generated sub-modules for v0_34\n")

    def test_metadata_round_trip(self, tmp_path, generator):
        output = make_output(tmp_path / "out", "tendermint.abci.rs")

        text = generator.generate_tree(output, Version(ident="v0_38", commitish="abc123"), "x")
        meta = parse_modules(text)["mods"]["meta"]["consts"]

        assert meta == {"REPOSITORY": REPO, "IDENT": "v0_38", "COMMITISH": "abc123"}

    def test_ignores_foreign_files(self, tmp_path, generator):
        output = make_output(
            tmp_path / "out",
            "tendermint.abci.rs",
            "google.protobuf.rs",
            "tendermint.abci.serde.json",
        )

        tree = parse_modules(generator.generate_tree(output, Version(ident="v1", commitish="c"), "p"))

        assert set(tree["mods"]) == {"abci", "meta"}
        assert tree["mods"]["abci"]["includes"] == ["p/tendermint.abci.rs"]

    def test_missing_output_dir(self, tmp_path, generator):
        with pytest.raises(MissingCompiledOutput):
            generator.generate_tree(tmp_path / "nope", Version(ident="v1", commitish="c"), "p")

    def test_no_namespace_files(self, tmp_path, generator):
        output = make_output(tmp_path / "out", "google.protobuf.rs")

        with pytest.raises(MissingCompiledOutput):
            generator.generate_tree(output, Version(ident="v1", commitish="c"), "p")

    def test_keyword_segment_becomes_raw_identifier(self, tmp_path, generator):
        output = make_output(tmp_path / "out", "tendermint.type.rs", "tendermint.abci.mod.rs")

        tree = parse_modules(generator.generate_tree(output, Version(ident="v1", commitish="c"), "p"))

        assert set(tree["mods"]) == {"abci", "r#type", "meta"}
        assert tree["mods"]["r#type"]["includes"] == ["p/tendermint.type.rs"]
        assert tree["mods"]["abci"]["mods"]["r#mod"]["includes"] == ["p/tendermint.abci.mod.rs"]

    def test_unusable_segment_rejected(self, tmp_path, generator):
        output = make_output(tmp_path / "out", "tendermint.self.rs")

        with pytest.raises(ValueError):
            generator.generate_tree(output, Version(ident="v1", commitish="c"), "p")

    def test_generation_is_deterministic(self, tmp_path, generator):
        output = make_output(tmp_path / "out", "tendermint.b.rs", "tendermint.a.x.rs", "tendermint.a.rs")
        version = Version(ident="v1", commitish="c")

        assert generator.generate_tree(output, version, "p") == generator.generate_tree(output, version, "p")

    def test_write_tree_uses_relative_include_path(self, tmp_path, generator):
        output = make_output(tmp_path / "src" / "prost" / "v0_34", "tendermint.abci.rs")
        module_dir = tmp_path / "src" / "tendermint"

        target = generator.write_tree(output, Version(ident="v0_34", commitish="c"), module_dir)

        assert target == module_dir / "v0_34.rs"
        tree = parse_modules(target.read_text())
        include = tree["mods"]["abci"]["includes"][0]
        assert include == "../prost/v0_34/tendermint.abci.rs"
        assert (module_dir / include).resolve() == (output / "tendermint.abci.rs").resolve()

    def test_write_tree_overwrites(self, tmp_path, generator):
        output = make_output(tmp_path / "out", "tendermint.abci.rs")
        module_dir = tmp_path / "mods"
        module_dir.mkdir()
        (module_dir / "v1.rs").write_text("stale content")

        target = generator.write_tree(output, Version(ident="v1", commitish="c"), module_dir)

        assert "stale content" not in target.read_text()


class TestGenerateAggregator:
    """Test the aggregator file."""

    def test_declares_all_and_reexports_last(self, generator):
        versions = [Version(ident="v1", commitish="a"), Version(ident="v2", commitish="b")]

        text = generator.generate_aggregator(versions)

        assert text == "pub mod v1;\npub mod v2;\npub use v2::*;\n"

    def test_last_in_input_order_not_lexical(self, generator):
        versions = [Version(ident="v0_38", commitish="a"), Version(ident="v0_34", commitish="b")]

        text = generator.generate_aggregator(versions)

        assert text.strip().splitlines()[-1] == "pub use v0_34::*;"
        assert "pub mod v0_38;" in text

    def test_empty_versions(self, generator):
        with pytest.raises(ValueError):
            generator.generate_aggregator([])

    def test_write_aggregator(self, tmp_path, generator):
        path = tmp_path / "src" / "tendermint.rs"

        generator.write_aggregator([Version(ident="v1", commitish="a")], path)

        assert path.read_text() == "pub mod v1;\npub use v1::*;\n"


class TestRustString:
    """Test Rust string literal quoting."""

    def test_plain(self):
        assert rust_string("main") == '"main"'

    def test_escapes(self):
        assert rust_string('a"b\\c') == '"a\\"b\\\\c"'

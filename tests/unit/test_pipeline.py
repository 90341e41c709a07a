"""
Unit tests for pipeline orchestration.
"""
import pytest
from pathlib import Path

from protosync.compiler import CompileFailed
from protosync.config import ConfigError, PipelineConfig
from protosync.pipeline import Pipeline
from protosync.vcs.git import GitRef
from protosync.vcs.resolver import Outcome, ResolvedRef


class FakeRepoSync:
    """Records syncs and lays out a proto tree instead of cloning."""

    def __init__(self):
        self.calls = []

    def sync(self, directory, url, commitish):
        self.calls.append((Path(directory), url, commitish))
        proto = Path(directory) / "proto" / "tendermint"
        proto.mkdir(parents=True, exist_ok=True)
        (proto / "abci.proto").write_text("")
        (proto / "types.proto").write_text("")
        return ResolvedRef(
            commit="f" * 40,
            reference=GitRef(f"refs/tags/{commitish}"),
            outcome=Outcome.DIRECT_REF
        )


class FakeCompiler:
    """Writes one output file per schema, named by namespace."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def compile(self, proto_files, include_paths, out_dir):
        self.calls.append((list(proto_files), list(include_paths), Path(out_dir)))
        if self.fail:
            raise CompileFailed("boom")
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        for proto in proto_files:
            (out_dir / f"tendermint.{Path(proto).stem}.rs").write_text(f"// {proto}\n")
        (out_dir / "google.protobuf.rs").write_text("// unrelated\n")


@pytest.fixture
def config(tmp_path):
    return PipelineConfig.from_dict(
        {
            'repository': 'https://example.com/upstream.git',
            'namespace_prefix': 'tendermint',
            'versions': [
                {'ident': 'v0_34', 'commitish': 'v0.34.x'},
                {'ident': 'v0_37', 'commitish': 'v0.37.x'},
            ],
        },
        base_dir=tmp_path
    )


class TestPipeline:
    """Test end-to-end orchestration with fake sync and compiler."""

    def test_run_all_versions(self, config, tmp_path):
        repo_sync = FakeRepoSync()
        compiler = FakeCompiler()
        pipeline = Pipeline(config, repo_sync=repo_sync, compiler=compiler)

        results = pipeline.run()

        assert [r.version.ident for r in results] == ["v0_34", "v0_37"]
        assert [call[2] for call in repo_sync.calls] == ["v0.34.x", "v0.37.x"]
        assert all(call[1] == config.repository for call in repo_sync.calls)

        first = results[0]
        assert first.schema_count == 2
        assert [p.name for p in first.collected] == ["tendermint.abci.rs", "tendermint.types.rs"]
        assert first.module_path == tmp_path / "src" / "tendermint" / "v0_34.rs"

        module_text = first.module_path.read_text()
        assert 'include!("../prost/v0_34/tendermint.abci.rs");' in module_text
        assert 'pub const COMMITISH: &str = "v0.34.x";' in module_text

        aggregator = (tmp_path / "src" / "tendermint.rs").read_text()
        assert aggregator == "pub mod v0_34;\npub mod v0_37;\npub use v0_37::*;\n"

        assert not (tmp_path / "src" / "prost" / "v0_34" / "google.protobuf.rs").exists()

    def test_compiler_receives_include_paths(self, config, tmp_path):
        compiler = FakeCompiler()
        Pipeline(config, repo_sync=FakeRepoSync(), compiler=compiler).run(only=["v0_34"])

        proto_files, include_paths, out_dir = compiler.calls[0]
        checkout = tmp_path / "target" / "upstream"
        assert include_paths == [checkout / "proto", checkout / "third_party" / "proto"]
        assert out_dir == tmp_path / "target" / "compiled"
        assert all(path.suffix == ".proto" for path in proto_files)

    def test_subset_still_writes_full_aggregator(self, config, tmp_path):
        repo_sync = FakeRepoSync()
        pipeline = Pipeline(config, repo_sync=repo_sync, compiler=FakeCompiler())

        results = pipeline.run(only=["v0_34"])

        assert len(results) == 1
        assert len(repo_sync.calls) == 1
        aggregator = (tmp_path / "src" / "tendermint.rs").read_text()
        assert "pub mod v0_37;" in aggregator
        assert aggregator.endswith("pub use v0_37::*;\n")

    def test_unknown_version(self, config):
        pipeline = Pipeline(config, repo_sync=FakeRepoSync(), compiler=FakeCompiler())

        with pytest.raises(ConfigError):
            pipeline.run(only=["v9"])

    def test_compile_failure_stops_run(self, config, tmp_path):
        pipeline = Pipeline(config, repo_sync=FakeRepoSync(), compiler=FakeCompiler(fail=True))

        with pytest.raises(CompileFailed):
            pipeline.run()

        assert not (tmp_path / "src" / "tendermint.rs").exists()

    def test_regenerate_modules(self, config, tmp_path):
        for ident in ("v0_34", "v0_37"):
            out = tmp_path / "src" / "prost" / ident
            out.mkdir(parents=True)
            (out / "tendermint.abci.rs").write_text("")

        paths = Pipeline(config).regenerate_modules()

        assert [p.name for p in paths] == ["v0_34.rs", "v0_37.rs", "tendermint.rs"]
        assert all(p.exists() for p in paths)

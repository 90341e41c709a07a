"""
External schema compiler invocation.

The compiler itself is opaque: protosync only assembles its command line from
the configured template, include roots and discovered schema files, and
checks that it succeeded.
"""
import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Sequence

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = ("protoc", "--prost_out={out_dir}")
DEFAULT_INCLUDE_FLAG = "-I{path}"


class CompileFailed(Exception):
    """Raised when the schema compiler cannot run or exits non-zero."""
    pass


class ProtoCompiler:
    """Runs the configured schema compiler command."""

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_COMMAND,
        include_flag: str = DEFAULT_INCLUDE_FLAG
    ):
        """
        Args:
            command: argv template; "{out_dir}" is substituted in each element
            include_flag: template for one include argument, "{path}" substituted
        """
        if not command:
            raise ValueError("compiler command must not be empty")
        self.command = list(command)
        self.include_flag = include_flag

    def build_command(
        self,
        proto_files: Sequence[Path],
        include_paths: Sequence[Path],
        out_dir: Path
    ) -> List[str]:
        args = [part.format(out_dir=out_dir) for part in self.command]
        args.extend(self.include_flag.format(path=path) for path in include_paths)
        args.extend(str(path) for path in proto_files)
        return args

    def compile(
        self,
        proto_files: Sequence[Path],
        include_paths: Sequence[Path],
        out_dir: Path
    ) -> None:
        """
        Compile proto_files into a freshly emptied out_dir.

        Raises:
            CompileFailed: If there is nothing to compile, the compiler is
                missing, or it exits non-zero
        """
        if not proto_files:
            raise CompileFailed("no schema files to compile")

        out_dir = Path(out_dir)
        try:
            shutil.rmtree(out_dir)
        except FileNotFoundError:
            pass
        out_dir.mkdir(parents=True, exist_ok=True)

        args = self.build_command(proto_files, include_paths, out_dir)
        logger.info(f"Compiling {len(proto_files)} schema files into {out_dir}")
        logger.debug(f"Running {' '.join(args)}")

        try:
            result = subprocess.run(args, capture_output=True, text=True)
        except OSError as e:
            raise CompileFailed(f"cannot run {args[0]}: {e}") from e

        if result.returncode != 0:
            raise CompileFailed(
                f"{args[0]} exited with code {result.returncode}: {result.stderr.strip()}"
            )

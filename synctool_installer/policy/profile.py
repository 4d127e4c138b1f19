"""
Profile — the fixed build configuration for a release install.

The profile encapsulates every toolchain knob so that the stages contain
no opinions.  Pointing the pipeline at a different toolchain or binary is
a profile change, not a code change.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple


@dataclass(frozen=True)
class BuildProfile:
    """Describes how the release artifact is built and stripped."""

    # Identity
    profile_id: str

    # Build
    toolchain: str                  # executable name or absolute path
    build_args: Tuple[str, ...]
    output_subdir: str              # relative to the working context
    binary_name: str

    # Strip
    strip_program: str = "strip"
    strip_args: Tuple[str, ...] = ()

    @classmethod
    def release(cls) -> "BuildProfile":
        """The locked default: cargo release build of synctool."""
        return cls(
            profile_id="cargo-release-strip",
            toolchain="cargo",
            build_args=("build", "--release"),
            output_subdir="target/release",
            binary_name="synctool",
            strip_program="strip",
            strip_args=(),
        )

    def build_command(self) -> List[str]:
        return [self.toolchain, *self.build_args]

    def strip_command(self, target: Path) -> List[str]:
        return [self.strip_program, *self.strip_args, str(target)]

    def artifact_path(self, project_dir: Path) -> Path:
        """Toolchain-defined location of the release artifact."""
        return project_dir / self.output_subdir / self.binary_name

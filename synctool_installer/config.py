"""
Pipeline configuration

Every path the pipeline touches is passed in here at construction time.
The defaults reproduce the historical install: build in the current
directory, deploy to ~/prog/sync.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from synctool_installer.policy.profile import BuildProfile


def default_deploy_path() -> Path:
    """Deployment target under the invoking user's home directory."""
    return Path.home() / "prog" / "sync"


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable settings for one pipeline run."""

    # Working context: all relative paths are anchored here
    project_dir: Path

    # Deployment target, overwritten on every successful install
    deploy_path: Path = field(default_factory=default_deploy_path)

    profile: BuildProfile = field(default_factory=BuildProfile.release)

    # Optional JSON receipt of the run
    receipt_path: Optional[Path] = None

    def __post_init__(self):
        # Resolve the working context once; the dataclass is frozen afterwards
        object.__setattr__(self, "project_dir", Path(self.project_dir).resolve())
        object.__setattr__(self, "deploy_path", Path(self.deploy_path).expanduser())
        if self.receipt_path is not None:
            object.__setattr__(self, "receipt_path", Path(self.receipt_path))

    @classmethod
    def default(cls) -> "PipelineConfig":
        """Config matching the original install script."""
        return cls(project_dir=Path.cwd())

    @property
    def artifact_path(self) -> Path:
        return self.profile.artifact_path(self.project_dir)

"""
PipelineReceipt Schema — synctool_installer

Single JSON receipt per pipeline run.
Records which stages ran, which commands they executed and how each ended.

No rollback information: a failed run describes the state it left behind.
"""
from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel


# =============================================================================
# Enums
# =============================================================================

class StageName(str, Enum):
    """Pipeline stages, in execution order."""
    BUILD = "build"
    INSTALL = "install"
    STRIP = "strip"


class PhaseStatus(str, Enum):
    """Status of a single stage."""
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class PipelineState(str, Enum):
    """Pipeline state machine. DONE and FAILED are terminal."""
    START = "START"
    BUILDING = "BUILDING"
    INSTALLING = "INSTALLING"
    STRIPPING = "STRIPPING"
    DONE = "DONE"
    FAILED = "FAILED"


class StageFailure(str, Enum):
    """Terminal failure outcome, one per stage."""
    BUILD_FAILURE = "BUILD_FAILURE"
    INSTALL_FAILURE = "INSTALL_FAILURE"
    STRIP_FAILURE = "STRIP_FAILURE"


class StageFlag(str, Enum):
    """Verification findings. Warnings only, they never fail a stage."""
    NON_ELF_OUTPUT = "NON_ELF_OUTPUT"
    STRIP_EXPECTED_MISSING = "STRIP_EXPECTED_MISSING"
    SIZE_NOT_REDUCED = "SIZE_NOT_REDUCED"


STAGE_STATES = {
    StageName.BUILD: PipelineState.BUILDING,
    StageName.INSTALL: PipelineState.INSTALLING,
    StageName.STRIP: PipelineState.STRIPPING,
}

STAGE_FAILURES = {
    StageName.BUILD: StageFailure.BUILD_FAILURE,
    StageName.INSTALL: StageFailure.INSTALL_FAILURE,
    StageName.STRIP: StageFailure.STRIP_FAILURE,
}


# =============================================================================
# Toolchain Identity
# =============================================================================

class ToolchainIdentity(BaseModel):
    """Record of the build environment."""
    toolchain_version: str  # <toolchain> --version first line
    rustc_version: str
    strip_version: str  # strip --version first line
    os_release: str  # /etc/os-release PRETTY_NAME
    kernel: str  # uname -r
    arch: str  # uname -m


# =============================================================================
# ELF Metadata & Artifact
# =============================================================================

class ElfMeta(BaseModel):
    """Minimal ELF metadata."""
    elf_type: str = ""  # ET_EXEC, ET_DYN, etc.
    arch: str = ""  # EM_X86_64, etc.
    build_id: Optional[str] = None


class DebugPresence(BaseModel):
    """Debug section presence check."""
    has_debug_sections: bool = False
    debug_sections: List[str] = []


class ArtifactMeta(BaseModel):
    """Metadata for a binary on disk."""
    path: str
    sha256: str
    size_bytes: int
    executable: bool = False
    is_elf: bool = False
    elf: ElfMeta = ElfMeta()
    debug_presence: DebugPresence = DebugPresence()


# =============================================================================
# Stage Result
# =============================================================================

class StageResult(BaseModel):
    """
    Outcome of one stage.

    ``output_path`` is what the next stage consumes: the release artifact
    after build, the deployment target after install and strip.
    """
    stage: StageName
    status: PhaseStatus = PhaseStatus.SKIPPED
    command: str = ""
    exit_code: int = -1
    duration_ms: int = 0
    output_path: Optional[str] = None
    error: Optional[str] = None
    failure: Optional[StageFailure] = None
    flags: List[StageFlag] = []
    artifact: Optional[ArtifactMeta] = None

    @property
    def ok(self) -> bool:
        return self.status == PhaseStatus.SUCCESS


# =============================================================================
# Top-level PipelineReceipt
# =============================================================================

class StateTransition(BaseModel):
    state: PipelineState
    at: str  # ISO 8601


class RunInfo(BaseModel):
    """Run-level metadata."""
    pipeline: str = "synctool_installer"
    version: str = "0.1.0"
    profile_id: str
    project_dir: str
    artifact_path: str
    deploy_path: str
    created_at: str
    finished_at: Optional[str] = None


class PipelineReceipt(BaseModel):
    """
    Receipt for a single build → install → strip run.

    ``exit_code`` is the code of the first failing stage, 0 when the
    pipeline reached DONE.
    """
    run: RunInfo
    toolchain: Optional[ToolchainIdentity] = None
    state: PipelineState = PipelineState.START
    transitions: List[StateTransition] = []
    stages: List[StageResult] = []
    exit_code: int = 0

    def transition(self, state: PipelineState) -> None:
        self.state = state
        self.transitions.append(StateTransition(state=state, at=now_iso()))

    def failed_stage(self) -> Optional[StageResult]:
        for result in self.stages:
            if result.status == PhaseStatus.FAILED:
                return result
        return None

    def stage(self, name: StageName) -> Optional[StageResult]:
        for result in self.stages:
            if result.stage == name:
                return result
        return None

    def raise_for_status(self) -> None:
        """Raise the typed failure of the first failing stage, if any."""
        failed = self.failed_stage()
        if failed is None:
            return
        # local import: errors imports this module for the enums
        from synctool_installer.errors import failure_for
        raise failure_for(failed)


# =============================================================================
# Helpers
# =============================================================================

def hash_file(path: Path) -> str:
    """SHA-256 of a file."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def now_iso() -> str:
    """Current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()

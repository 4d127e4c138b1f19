"""
Stages — build, install and strip, each returning a StageResult.

Each stage reads what the previous one left in the StageContext and
publishes its own output there:

    build   → ctx.artifact_path   (release artifact under the working context)
    install → ctx.deployed_path   (deployment target, unstripped)
    strip   → ctx.deployed_path   (same file, stripped in place)

A stage never raises for an expected failure; it returns a FAILED result
and the driver decides what happens next.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from synctool_installer.config import PipelineConfig
from synctool_installer.core.elf_check import inspect_binary
from synctool_installer.core.process import CommandResult, format_command, run_traced, trace
from synctool_installer.receipt import (
    STAGE_FAILURES,
    ArtifactMeta,
    PhaseStatus,
    StageFlag,
    StageName,
    StageResult,
)

logger = logging.getLogger(__name__)

# cp reports every copy error with status 1
EXIT_COPY_FAILED = 1


@dataclass
class StageContext:
    """Mutable hand-off between stages within one run."""

    config: PipelineConfig
    artifact_path: Optional[Path] = None
    deployed_path: Optional[Path] = None
    installed: Optional[ArtifactMeta] = None  # deployed file before strip


def _result(name: StageName, cmd: CommandResult) -> StageResult:
    """Translate a command outcome into a StageResult."""
    ok = cmd.ok
    return StageResult(
        stage=name,
        status=PhaseStatus.SUCCESS if ok else PhaseStatus.FAILED,
        command=cmd.command,
        exit_code=cmd.exit_code,
        duration_ms=cmd.duration_ms,
        error=cmd.error,
        failure=None if ok else STAGE_FAILURES[name],
    )


def _inspect(path: Path) -> Optional[ArtifactMeta]:
    """inspect_binary, but a read error only costs the metadata."""
    try:
        return inspect_binary(path)
    except OSError as e:
        logger.warning(f"Could not inspect {path}: {e}")
        return None


def copy_replace(src: Path, dst: Path) -> None:
    """
    Copy bytes and permission bits of *src* onto *dst* in one rename.

    The data goes to a temporary file beside *dst* first, so *dst* is
    either the old file or the complete new one, never a partial copy.
    """
    with open(src, "rb") as fsrc:
        tmp = tempfile.NamedTemporaryFile(
            dir=dst.parent, prefix=f".{dst.name}.", delete=False,
        )
        try:
            with tmp:
                shutil.copyfileobj(fsrc, tmp)
            shutil.copymode(src, tmp.name)
            os.replace(tmp.name, dst)
        except BaseException:
            os.unlink(tmp.name)
            raise


class Stage:
    """One step of the pipeline."""

    name: StageName

    def run(self, ctx: StageContext) -> StageResult:
        raise NotImplementedError


# =============================================================================
# Build
# =============================================================================

class BuildStage(Stage):
    """Compile the project in release mode with the profile's toolchain."""

    name = StageName.BUILD

    def run(self, ctx: StageContext) -> StageResult:
        config = ctx.config
        cmd = run_traced(config.profile.build_command(), cwd=config.project_dir)
        result = _result(self.name, cmd)
        if result.ok:
            ctx.artifact_path = config.artifact_path
            result.output_path = str(ctx.artifact_path)
        return result


# =============================================================================
# Install
# =============================================================================

class InstallStage(Stage):
    """
    Copy the release artifact onto the deployment target.

    Bytes and permission bits are copied, an existing target is
    replaced only once the full copy is in place.  The target's parent
    directory must already exist.
    """

    name = StageName.INSTALL

    def run(self, ctx: StageContext) -> StageResult:
        src = ctx.artifact_path or ctx.config.artifact_path
        dst = ctx.config.deploy_path
        command = format_command(["cp", str(src), str(dst)])
        trace(command)

        t0 = time.monotonic()
        try:
            copy_replace(Path(src), dst)
        except OSError as e:
            duration = int((time.monotonic() - t0) * 1000)
            logger.error(f"cp: {e}")
            return StageResult(
                stage=self.name,
                status=PhaseStatus.FAILED,
                command=command,
                exit_code=EXIT_COPY_FAILED,
                duration_ms=duration,
                error=str(e),
                failure=STAGE_FAILURES[self.name],
            )
        duration = int((time.monotonic() - t0) * 1000)

        artifact = _inspect(dst)
        flags = []
        if artifact is not None and not artifact.is_elf:
            flags.append(StageFlag.NON_ELF_OUTPUT)
            logger.warning(f"Installed file is not an ELF binary: {dst}")

        ctx.deployed_path = dst
        ctx.installed = artifact
        return StageResult(
            stage=self.name,
            status=PhaseStatus.SUCCESS,
            command=command,
            exit_code=0,
            duration_ms=duration,
            output_path=str(dst),
            flags=flags,
            artifact=artifact,
        )


# =============================================================================
# Strip
# =============================================================================

class StripStage(Stage):
    """
    Remove debug symbols from the deployed file in place.

    After a successful strip the file is re-inspected; surviving debug
    sections or an unchanged size are flagged but do not fail the stage.
    """

    name = StageName.STRIP

    def run(self, ctx: StageContext) -> StageResult:
        target = ctx.deployed_path or ctx.config.deploy_path
        cmd = run_traced(ctx.config.profile.strip_command(target))
        result = _result(self.name, cmd)
        if not result.ok:
            return result

        result.output_path = str(target)
        artifact = _inspect(target)
        result.artifact = artifact
        if artifact is None:
            return result

        if not artifact.is_elf:
            result.flags.append(StageFlag.NON_ELF_OUTPUT)
        elif artifact.debug_presence.has_debug_sections:
            result.flags.append(StageFlag.STRIP_EXPECTED_MISSING)
            logger.warning(
                f"Debug sections survived strip: "
                f"{', '.join(artifact.debug_presence.debug_sections)}"
            )

        before = ctx.installed
        if before is not None and artifact.size_bytes >= before.size_bytes:
            result.flags.append(StageFlag.SIZE_NOT_REDUCED)
            logger.warning(
                f"Strip did not reduce size of {target} "
                f"({before.size_bytes} -> {artifact.size_bytes} bytes)"
            )
        return result

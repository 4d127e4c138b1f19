"""
Typed pipeline failures.

The driver itself never raises these; it records a failed StageResult and
stops.  ``PipelineReceipt.raise_for_status()`` turns that result into one of
the exceptions below for callers that prefer exceptions to exit codes.
"""
from typing import Optional

from synctool_installer.receipt import StageName, StageResult


class PipelineFailure(Exception):
    """
    A stage failed; carries the stage and the underlying exit code.

    Raise one of the per-stage subclasses; the base has no stage of its own.
    """

    stage: Optional[StageName] = None

    def __init__(self, exit_code: int, command: str = "", detail: str = ""):
        self.exit_code = exit_code
        self.command = command
        self.detail = detail
        where = self.stage.value if self.stage is not None else "pipeline"
        msg = f"{where} failed with exit code {exit_code}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class BuildFailure(PipelineFailure):
    stage = StageName.BUILD


class InstallFailure(PipelineFailure):
    stage = StageName.INSTALL


class StripFailure(PipelineFailure):
    stage = StageName.STRIP


_FAILURES = {
    StageName.BUILD: BuildFailure,
    StageName.INSTALL: InstallFailure,
    StageName.STRIP: StripFailure,
}


def failure_for(result: StageResult) -> PipelineFailure:
    """Build the exception matching a failed stage result."""
    cls = _FAILURES[result.stage]
    return cls(result.exit_code, command=result.command, detail=result.error or "")

"""
Pipeline runner — top-level orchestration: build → install → strip.

This module ties the stages, the state machine and the receipt together
into a single ``run_pipeline`` function that can be called from code or
from the ``synctool-install`` command.

Stages run strictly in order.  The first failing stage ends the run, the
remaining stages are recorded as SKIPPED and never executed, and nothing
already done is undone.
"""
import argparse
import logging
import sys
from typing import List, Optional, Sequence

from synctool_installer import PIPELINE_NAME, __version__
from synctool_installer.config import PipelineConfig
from synctool_installer.core.stages import (
    BuildStage,
    InstallStage,
    Stage,
    StageContext,
    StripStage,
)
from synctool_installer.core.toolchain import capture_toolchain
from synctool_installer.receipt import (
    STAGE_STATES,
    PhaseStatus,
    PipelineReceipt,
    PipelineState,
    RunInfo,
    StageResult,
    now_iso,
)

logger = logging.getLogger(__name__)


def default_stages() -> List[Stage]:
    """The fixed stage order."""
    return [BuildStage(), InstallStage(), StripStage()]


def run_pipeline(
    config: Optional[PipelineConfig] = None,
    stages: Optional[Sequence[Stage]] = None,
) -> PipelineReceipt:
    """
    Run every stage in order, stopping at the first failure.

    Parameters
    ----------
    config : PipelineConfig, optional
        Paths and profile.  Defaults to PipelineConfig.default().
    stages : sequence of Stage, optional
        Overrides the stage list.  Defaults to build, install, strip.

    Returns
    -------
    PipelineReceipt
        ``exit_code`` is 0 on success, otherwise the failing stage's code.
    """
    if config is None:
        config = PipelineConfig.default()
    if stages is None:
        stages = default_stages()

    receipt = PipelineReceipt(
        run=RunInfo(
            pipeline=PIPELINE_NAME,
            version=__version__,
            profile_id=config.profile.profile_id,
            project_dir=str(config.project_dir),
            artifact_path=str(config.artifact_path),
            deploy_path=str(config.deploy_path),
            created_at=now_iso(),
        ),
    )
    receipt.transition(PipelineState.START)

    if config.receipt_path is not None:
        receipt.toolchain = capture_toolchain(config.profile)

    ctx = StageContext(config=config)
    failed: Optional[StageResult] = None

    for stage in stages:
        if failed is not None:
            receipt.stages.append(StageResult(stage=stage.name, status=PhaseStatus.SKIPPED))
            continue

        receipt.transition(STAGE_STATES[stage.name])
        logger.debug("State → %s", receipt.state.value)

        result = stage.run(ctx)
        receipt.stages.append(result)
        if result.status != PhaseStatus.SUCCESS:
            failed = result

    if failed is not None:
        # a failed stage always carries a non-zero code; guard anyway
        receipt.exit_code = failed.exit_code or 1
        receipt.transition(PipelineState.FAILED)
        logger.error(
            "%s stage failed with exit code %d",
            failed.stage.value, receipt.exit_code,
        )
    else:
        receipt.exit_code = 0
        receipt.transition(PipelineState.DONE)
        logger.info("Installed %s", config.deploy_path)

    receipt.run.finished_at = now_iso()

    if config.receipt_path is not None:
        _save_receipt(receipt, config)

    return receipt


def _save_receipt(receipt: PipelineReceipt, config: PipelineConfig):
    """Save the receipt JSON to the configured path."""
    path = config.receipt_path
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(receipt.model_dump_json(indent=2) + "\n")
    except OSError as e:
        # the run's outcome stands; only the record is lost
        logger.error("Could not save receipt %s: %s", path, e)
        return
    logger.info("Receipt saved: %s", path)


# ── CLI ──────────────────────────────────────────────────────────────────────

def main(argv: Optional[List[str]] = None):
    """CLI entry point. Takes no options; exits with the pipeline's code."""
    parser = argparse.ArgumentParser(
        prog="synctool-install",
        description=(
            "Build synctool in release mode, install it to ~/prog/sync "
            "and strip its debug symbols."
        ),
    )
    parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    receipt = run_pipeline(PipelineConfig.default())
    sys.exit(receipt.exit_code)


if __name__ == "__main__":
    main()

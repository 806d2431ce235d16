import subprocess
import time
from pathlib import Path
from typing import List

from doradoflow import reporting
from doradoflow.configuration import WorkflowConfig
from doradoflow.logging_config import logger
from doradoflow.utils import format_command
from doradoflow.workflow_run import WorkflowRun


def build_demux_command(config: WorkflowConfig, output_dir: Path) -> List[str]:
    return [
        str(config.dorado_executable),
        "demux",
        str(config.output_bam),
        "--no-classify",
        "--output-dir",
        str(output_dir),
    ]


def process_demultiplexing(run: WorkflowRun, config: WorkflowConfig, dry_run: bool) -> None:
    reporting.step_started(2, "Demultiplexing...")

    cmd = build_demux_command(config, run.demux_dir)
    logger.info("Running demultiplexing: %s", format_command(cmd))

    if dry_run:
        logger.info("Dry run. Skipping demultiplexing.")
        reporting.step_detail(f"Dry run: {format_command(cmd)}")
        return

    # Reuse the output directory if it already exists
    run.demux_dir.mkdir(parents=True, exist_ok=True)

    start = time.time()
    subprocess.run(cmd, check=True)
    logger.info("Demultiplexing finished in %.1f seconds", time.time() - start)

    reporting.step_completed(f"Demultiplexing complete → {run.demux_dir}")

import subprocess
import time
from typing import List

from doradoflow import reporting
from doradoflow.configuration import WorkflowConfig
from doradoflow.logging_config import logger
from doradoflow.utils import format_command


def build_basecaller_command(config: WorkflowConfig) -> List[str]:
    return [
        str(config.dorado_executable),
        "basecaller",
        config.basecalling_model,
        str(config.input_dir),
        "-x",
        config.device,
        "--kit-name",
        config.kit_name,
    ]


def process_basecalling(config: WorkflowConfig, dry_run: bool) -> None:
    reporting.step_started(1, "Basecalling with Dorado...")
    reporting.step_detail(f"Using kit: {config.kit_name}")

    cmd = build_basecaller_command(config)
    logger.info("Running basecaller: %s > %s", format_command(cmd), config.output_bam)

    if dry_run:
        logger.info("Dry run. Skipping basecalling.")
        reporting.step_detail(f"Dry run: {format_command(cmd)} > {config.output_bam}")
        return

    # Basecalled reads are written to stdout
    start = time.time()
    config.output_bam.parent.mkdir(parents=True, exist_ok=True)
    with open(config.output_bam, "wb") as f:
        subprocess.run(cmd, stdout=f, check=True)
    logger.info("Basecalling finished in %.1f seconds", time.time() - start)

    reporting.step_completed(f"Basecalling complete → {config.output_bam}")

import subprocess
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from doradoflow import reporting
from doradoflow.basecalling import process_basecalling
from doradoflow.configuration import WorkflowConfig, resolve_kit_name
from doradoflow.constants import (
    DEFAULT_BASECALLING_MODEL,
    DEFAULT_DEVICE,
    DEFAULT_KIT_NAME,
    ENV_GZIP,
    ENV_SAMTOOLS,
    ENV_WORK_DIR,
    GZIP_EXECUTABLE,
    SAMTOOLS_EXECUTABLE,
)
from doradoflow.conversion import BarcodeNotFoundError, DuplicateBarcodeError, NoDemultiplexedBamsError, process_conversion
from doradoflow.demultiplexing import process_demultiplexing
from doradoflow.logging_config import logger, set_console_handler, set_log_file_handler, set_null_handler
from doradoflow.pod5_handling import check_sequencing_kit
from doradoflow.utils import exit_code_from_returncode, format_command
from doradoflow.workflow_run import WorkflowRun

# Set up the CLI
app = typer.Typer()


@app.command()
def run(
    ctx: typer.Context,
    dorado_executable: Annotated[
        Optional[Path],
        typer.Argument(
            help="Path to dorado executable",
            show_default=False,
        ),
    ] = None,
    input_dir: Annotated[
        Optional[Path],
        typer.Argument(
            help="Directory with pod5 files",
            show_default=False,
        ),
    ] = None,
    output_bam: Annotated[
        Optional[Path],
        typer.Argument(
            help="Output BAM file from basecalling",
            show_default=False,
        ),
    ] = None,
    kit_name: Annotated[
        Optional[str],
        typer.Argument(
            help=f"Sequencing kit name [default: {DEFAULT_KIT_NAME}]",
            show_default=False,
        ),
    ] = None,
    work_dir: Annotated[
        Path,
        typer.Option(
            "--work-dir",
            "-w",
            help="Directory for demultiplexed BAM files (demux_bams) and FASTQ files (results/fastq)",
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            envvar=ENV_WORK_DIR,
        ),
    ] = Path("."),
    basecalling_model: Annotated[
        str,
        typer.Option(
            "--model",
            "-m",
            help="Basecalling model (e.g. fast, hac, sup or path to model)",
        ),
    ] = DEFAULT_BASECALLING_MODEL,
    device: Annotated[
        str,
        typer.Option(
            "--device",
            "-x",
            help="Device string passed to dorado",
        ),
    ] = DEFAULT_DEVICE,
    samtools_executable: Annotated[
        str,
        typer.Option(
            "--samtools",
            help="samtools executable used for BAM to FASTQ conversion",
            envvar=ENV_SAMTOOLS,
        ),
    ] = SAMTOOLS_EXECUTABLE,
    gzip_executable: Annotated[
        str,
        typer.Option(
            "--gzip",
            help="gzip executable used for compression",
            envvar=ENV_GZIP,
        ),
    ] = GZIP_EXECUTABLE,
    skip_unbarcoded: Annotated[
        bool,
        typer.Option(
            "--skip-unbarcoded",
            help="Skip demultiplexed BAM files without a barcode in the name instead of failing",
        ),
    ] = False,
    check_kit: Annotated[
        bool,
        typer.Option(
            "--check-kit/--no-check-kit",
            help="Warn if the kit differs from the kit recorded in the pod5 files",
        ),
    ] = True,
    log_file: Annotated[
        Optional[Path],
        typer.Option(
            "--log-file",
            "-l",
            help="Path to log file",
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Write log messages to stderr",
        ),
    ] = False,
    run_basecalling: Annotated[
        bool,
        typer.Option(
            "--run-basecalling",
            help="Run basecalling",
        ),
    ] = False,
    run_demultiplexing: Annotated[
        bool,
        typer.Option(
            "--run-demultiplexing",
            help="Run demultiplexing",
        ),
    ] = False,
    run_conversion: Annotated[
        bool,
        typer.Option(
            "--run-conversion",
            help="Run BAM to FASTQ conversion",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-d",
            help="Dry run",
        ),
    ] = False,
) -> None:
    """
    Basecall pod5 files with dorado, demultiplex the reads and write one gzipped FASTQ per barcode.
    """

    # Check required arguments before doing anything else
    if dorado_executable is None or input_dir is None or output_bam is None:
        typer.echo(ctx.get_usage())
        raise typer.Exit(code=1)

    # Check if everything should be run (default behaviour if all options are False)
    if not any([run_basecalling, run_demultiplexing, run_conversion]):
        run_basecalling = True
        run_demultiplexing = True
        run_conversion = True

    # Setup logging
    if log_file is not None:
        set_log_file_handler(logger, log_file)
    if verbose:
        set_console_handler(logger)
    if log_file is None and not verbose:
        set_null_handler(logger)

    # Welcome message
    logger.info("Running doradoflow...")

    config = WorkflowConfig(
        dorado_executable=dorado_executable,
        input_dir=input_dir,
        output_bam=output_bam,
        kit_name=resolve_kit_name(kit_name),
        basecalling_model=basecalling_model,
        device=device,
        samtools_executable=samtools_executable,
        gzip_executable=gzip_executable,
    )
    workflow_run = WorkflowRun(work_dir)

    try:
        process_workflow_run(
            workflow_run=workflow_run,
            config=config,
            run_basecalling=run_basecalling,
            run_demultiplexing=run_demultiplexing,
            run_conversion=run_conversion,
            skip_unbarcoded=skip_unbarcoded,
            check_kit=check_kit,
            dry_run=dry_run,
        )
    except subprocess.CalledProcessError as e:
        logger.error("Command failed with exit code %d: %s", e.returncode, format_command(e.cmd))
        reporting.failure(f"Command failed with exit code {e.returncode}: {format_command(e.cmd)}")
        raise typer.Exit(code=exit_code_from_returncode(e.returncode)) from e
    except NoDemultiplexedBamsError as e:
        logger.error(str(e))
        reporting.warning(str(e))
        raise typer.Exit(code=1) from e
    except (BarcodeNotFoundError, DuplicateBarcodeError) as e:
        logger.error(str(e))
        reporting.failure(str(e))
        raise typer.Exit(code=1) from e
    except FileNotFoundError as e:
        logger.error("Command or file not found: %s", e.filename)
        reporting.failure(f"Command or file not found: {e.filename}")
        raise typer.Exit(code=127) from e
    except PermissionError as e:
        logger.error("Permission denied: %s", e.filename)
        reporting.failure(f"Permission denied: {e.filename}")
        raise typer.Exit(code=126) from e

    logger.info("Done.")


def process_workflow_run(
    workflow_run: WorkflowRun,
    config: WorkflowConfig,
    run_basecalling: bool,
    run_demultiplexing: bool,
    run_conversion: bool,
    skip_unbarcoded: bool,
    check_kit: bool,
    dry_run: bool,
):
    logger.info("Processing %s", str(config.input_dir))

    # Setup work directory and keep a record of the configuration
    if not dry_run:
        workflow_run.work_dir.mkdir(parents=True, exist_ok=True)
        config.save(workflow_run.config_file)
        logger.info("Saved workflow config to %s", str(workflow_run.config_file))

    # Basecalling
    if run_basecalling:
        if check_kit:
            check_sequencing_kit(config.input_dir, config.kit_name)
        process_basecalling(
            config=config,
            dry_run=dry_run,
        )

    # Demultiplexing
    if run_demultiplexing:
        process_demultiplexing(
            run=workflow_run,
            config=config,
            dry_run=dry_run,
        )

    # Conversion
    if run_conversion:
        process_conversion(
            run=workflow_run,
            config=config,
            skip_unbarcoded=skip_unbarcoded,
            dry_run=dry_run,
        )


if __name__ == "__main__":
    app()

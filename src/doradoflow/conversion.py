import re
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List

from doradoflow import reporting
from doradoflow.configuration import WorkflowConfig
from doradoflow.filenames import FASTQ_SUFFIX
from doradoflow.logging_config import logger
from doradoflow.utils import format_command
from doradoflow.workflow_run import WorkflowRun

# Last "barcode<digits>" token at the start of the name or right after an underscore
BARCODE_PATTERN = re.compile(r"(?:.*_)?(barcode(\d+))")


class NoDemultiplexedBamsError(FileNotFoundError):
    pass


class BarcodeNotFoundError(ValueError):
    pass


class DuplicateBarcodeError(ValueError):
    pass


@dataclass(frozen=True, order=True)
class Barcode:
    number: int
    token: str

    @property
    def fastq_name(self) -> str:
        return f"{self.token}{FASTQ_SUFFIX}"


@dataclass
class FastqConversion:
    bam: Path
    barcode: Barcode
    fastq: Path


def extract_barcode(filename: str) -> Barcode | None:
    match = BARCODE_PATTERN.match(filename)
    if match is None:
        return None
    return Barcode(number=int(match[2]), token=match[1])


def plan_conversions(bam_files: List[Path], fastq_dir: Path, skip_unbarcoded: bool = False) -> List[FastqConversion]:
    """
    Map every demultiplexed BAM file to its FASTQ destination.

    Raises:
        NoDemultiplexedBamsError: if there are no (barcoded) BAM files
        BarcodeNotFoundError: if a file name has no barcode token (unless skip_unbarcoded)
        DuplicateBarcodeError: if two files map to the same barcode
    """
    if not bam_files:
        raise NoDemultiplexedBamsError("No demultiplexed BAM files to convert")

    conversions: List[FastqConversion] = []
    unbarcoded: List[Path] = []
    for bam in bam_files:
        barcode = extract_barcode(bam.name)
        if barcode is None:
            unbarcoded.append(bam)
            continue
        conversions.append(FastqConversion(bam=bam, barcode=barcode, fastq=fastq_dir / barcode.fastq_name))

    if unbarcoded:
        names = ", ".join(bam.name for bam in unbarcoded)
        if not skip_unbarcoded:
            raise BarcodeNotFoundError(f"No barcode found in file name(s): {names}")
        logger.warning("Skipping files without barcode: %s", names)
        reporting.warning(f"Skipping files without barcode: {names}")

    if not conversions:
        raise NoDemultiplexedBamsError("No barcoded BAM files to convert")

    # Two inputs must never write the same output
    destinations = [conversion.fastq for conversion in conversions]
    if len(destinations) != len(set(destinations)):
        duplicates = sorted({conversion.fastq.name for conversion in conversions if destinations.count(conversion.fastq) > 1})
        raise DuplicateBarcodeError(f"Multiple BAM files map to the same output: {', '.join(duplicates)}")

    return conversions


def build_fastq_command(samtools_executable: str, bam: Path) -> List[str]:
    return [samtools_executable, "fastq", str(bam)]


def build_compress_command(gzip_executable: str) -> List[str]:
    return [gzip_executable, "-c"]


def convert_bam_to_fastq(bam: Path, fastq: Path, samtools_executable: str, gzip_executable: str) -> None:
    fastq_cmd = build_fastq_command(samtools_executable, bam)
    compress_cmd = build_compress_command(gzip_executable)
    logger.info("Running conversion: %s | %s > %s", format_command(fastq_cmd), format_command(compress_cmd), fastq)

    with open(fastq, "wb") as out_handle:
        with subprocess.Popen(fastq_cmd, stdout=subprocess.PIPE) as fastq_proc:
            try:
                compress_proc = subprocess.Popen(compress_cmd, stdin=fastq_proc.stdout, stdout=out_handle)
            except OSError:
                fastq_proc.kill()
                raise

            # Let samtools receive SIGPIPE if gzip exits early
            if fastq_proc.stdout is not None:
                fastq_proc.stdout.close()

            compress_return = compress_proc.wait()
            fastq_return = fastq_proc.wait()

    # Same order as pipefail: the rightmost failing command wins
    if compress_return != 0:
        raise subprocess.CalledProcessError(compress_return, compress_cmd)
    if fastq_return != 0:
        raise subprocess.CalledProcessError(fastq_return, fastq_cmd)


def process_conversion(
    run: WorkflowRun,
    config: WorkflowConfig,
    skip_unbarcoded: bool,
    dry_run: bool,
) -> List[FastqConversion]:
    reporting.step_started(3, "Converting BAMs to FASTQs...")

    bam_files = run.get_demultiplexed_bams()
    if not bam_files and dry_run:
        logger.info("Dry run. No demultiplexed BAM files in %s yet.", run.demux_dir)
        reporting.warning(f"Dry run: no demultiplexed BAM files in {run.demux_dir} yet")
        return []
    if not bam_files:
        raise NoDemultiplexedBamsError(f"No demultiplexed BAM files found in {run.demux_dir}")

    conversions = plan_conversions(bam_files, run.fastq_dir, skip_unbarcoded=skip_unbarcoded)
    logger.info("Converting %d BAM file(s) to FASTQ", len(conversions))

    if not dry_run:
        run.fastq_dir.mkdir(parents=True, exist_ok=True)

    start = time.time()
    for conversion in conversions:
        reporting.step_detail(f"→ {conversion.bam} → {conversion.fastq}")
        if dry_run:
            continue
        convert_bam_to_fastq(
            bam=conversion.bam,
            fastq=conversion.fastq,
            samtools_executable=config.samtools_executable,
            gzip_executable=config.gzip_executable,
        )

    if dry_run:
        logger.info("Dry run. Skipping conversion.")
        return conversions

    logger.info("Conversion finished in %.1f seconds", time.time() - start)
    reporting.step_completed(f"All FASTQs generated in {run.fastq_dir}")
    reporting.print_directory_listing(run.fastq_dir)

    return conversions

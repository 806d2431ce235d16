import gzip
import shutil
import subprocess
from pathlib import Path
from typing import List

import pytest

from doradoflow.configuration import WorkflowConfig
from doradoflow.conversion import (
    Barcode,
    BarcodeNotFoundError,
    DuplicateBarcodeError,
    NoDemultiplexedBamsError,
    convert_bam_to_fastq,
    extract_barcode,
    plan_conversions,
    process_conversion,
)
from doradoflow.workflow_run import WorkflowRun

requires_gzip = pytest.mark.skipif(shutil.which("gzip") is None, reason="gzip not installed")


@pytest.mark.parametrize(
    "filename, expected",
    [
        pytest.param(
            "run1_barcode01.bam",
            Barcode(1, "barcode01"),
            id="Simple",
        ),
        pytest.param(
            "SQK-RBK114-96_barcode12.bam",
            Barcode(12, "barcode12"),
            id="Kit prefix",
        ),
        pytest.param(
            "barcode05.bam",
            Barcode(5, "barcode05"),
            id="No prefix",
        ),
        pytest.param(
            "run_barcode01_part_barcode07.bam",
            Barcode(7, "barcode07"),
            id="Last token wins",
        ),
        pytest.param(
            "run1_barcode03_0.bam",
            Barcode(3, "barcode03"),
            id="Suffix after token",
        ),
        pytest.param(
            "run1_barcode123.bam",
            Barcode(123, "barcode123"),
            id="Three digits",
        ),
        pytest.param(
            "unclassified.bam",
            None,
            id="Unclassified",
        ),
        pytest.param(
            "run1_barcodes.bam",
            None,
            id="No digits",
        ),
        pytest.param(
            "runbarcode01.bam",
            None,
            id="No separator",
        ),
    ],
)
def test_extract_barcode(filename: str, expected: Barcode | None):
    # Act
    result = extract_barcode(filename)

    # Assert
    assert result == expected


def test_barcode_fastq_name():
    assert Barcode(1, "barcode01").fastq_name == "barcode01.fastq.gz"


def test_barcodes_sort_by_number():
    # Arrange
    barcodes = [Barcode(12, "barcode12"), Barcode(2, "barcode02"), Barcode(1, "barcode01")]

    # Act
    result = sorted(barcodes)

    # Assert
    assert [barcode.number for barcode in result] == [1, 2, 12]


@pytest.mark.parametrize(
    "bam_names, expected_fastq_names",
    [
        pytest.param(
            ["run1_barcode01.bam", "run1_barcode12.bam"],
            ["barcode01.fastq.gz", "barcode12.fastq.gz"],
            id="Two barcodes",
        ),
        pytest.param(
            ["kit_barcode96.bam"],
            ["barcode96.fastq.gz"],
            id="Single barcode",
        ),
    ],
)
def test_plan_conversions(tmp_path: Path, bam_names: List[str], expected_fastq_names: List[str]):
    # Arrange
    fastq_dir = tmp_path / "results" / "fastq"
    bam_files = [tmp_path / name for name in bam_names]

    # Act
    conversions = plan_conversions(bam_files, fastq_dir)

    # Assert
    assert [conversion.bam for conversion in conversions] == bam_files
    assert [conversion.fastq for conversion in conversions] == [fastq_dir / name for name in expected_fastq_names]


def test_plan_conversions_without_files(tmp_path: Path):
    with pytest.raises(NoDemultiplexedBamsError):
        plan_conversions([], tmp_path)


def test_plan_conversions_missing_barcode(tmp_path: Path):
    # Arrange
    bam_files = [tmp_path / "run1_barcode01.bam", tmp_path / "unclassified.bam"]

    # Act & Assert
    with pytest.raises(BarcodeNotFoundError, match="unclassified.bam"):
        plan_conversions(bam_files, tmp_path)


def test_plan_conversions_skip_unbarcoded(tmp_path: Path):
    # Arrange
    bam_files = [tmp_path / "run1_barcode01.bam", tmp_path / "unclassified.bam"]

    # Act
    conversions = plan_conversions(bam_files, tmp_path, skip_unbarcoded=True)

    # Assert
    assert [conversion.barcode for conversion in conversions] == [Barcode(1, "barcode01")]


def test_plan_conversions_skip_unbarcoded_only_unbarcoded(tmp_path: Path):
    with pytest.raises(NoDemultiplexedBamsError):
        plan_conversions([tmp_path / "unclassified.bam"], tmp_path, skip_unbarcoded=True)


def test_plan_conversions_duplicate_barcodes(tmp_path: Path):
    # Arrange
    bam_files = [tmp_path / "run1_barcode01.bam", tmp_path / "run2_barcode01.bam"]

    # Act & Assert
    with pytest.raises(DuplicateBarcodeError, match="barcode01.fastq.gz"):
        plan_conversions(bam_files, tmp_path)


@requires_gzip
def test_convert_bam_to_fastq(tmp_path: Path, fake_samtools: Path):
    # Arrange
    bam = tmp_path / "run1_barcode01.bam"
    bam.write_bytes(b"@read1\nACGT\n+\n!!!!\n")
    fastq = tmp_path / "barcode01.fastq.gz"

    # Act
    convert_bam_to_fastq(bam, fastq, str(fake_samtools), "gzip")

    # Assert
    assert gzip.decompress(fastq.read_bytes()) == b"@read1\nACGT\n+\n!!!!\n"


@requires_gzip
def test_convert_bam_to_fastq_samtools_fails(tmp_path: Path, failing_samtools: Path):
    # Arrange
    bam = tmp_path / "run1_barcode01.bam"
    bam.touch()
    fastq = tmp_path / "barcode01.fastq.gz"

    # Act & Assert
    with pytest.raises(subprocess.CalledProcessError) as exc_info:
        convert_bam_to_fastq(bam, fastq, str(failing_samtools), "gzip")
    assert exc_info.value.returncode == 5

    # Partial output is left behind
    assert fastq.exists()


def test_convert_bam_to_fastq_gzip_fails_first(tmp_path: Path, make_executable, failing_gzip: Path):
    # Arrange
    failing_samtools = make_executable("failing_samtools", "#!/bin/sh\nexit 5\n")
    bam = tmp_path / "run1_barcode01.bam"
    bam.touch()
    fastq = tmp_path / "barcode01.fastq.gz"

    # Act & Assert
    with pytest.raises(subprocess.CalledProcessError) as exc_info:
        convert_bam_to_fastq(bam, fastq, str(failing_samtools), str(failing_gzip))
    assert exc_info.value.returncode == 4


def test_convert_bam_to_fastq_missing_compressor(tmp_path: Path, fake_samtools: Path):
    # Arrange
    bam = tmp_path / "run1_barcode01.bam"
    bam.touch()

    # Act & Assert
    with pytest.raises(FileNotFoundError):
        convert_bam_to_fastq(bam, tmp_path / "barcode01.fastq.gz", str(fake_samtools), str(tmp_path / "no_such_gzip"))


@requires_gzip
def test_process_conversion(tmp_path: Path, fake_samtools: Path):
    # Arrange
    run = WorkflowRun(tmp_path)
    run.demux_dir.mkdir(parents=True)
    (run.demux_dir / "run1_barcode01.bam").write_bytes(b"reads-barcode01\n")
    (run.demux_dir / "run1_barcode12.bam").write_bytes(b"reads-barcode12\n")
    config = WorkflowConfig(
        dorado_executable=Path("dorado"),
        input_dir=tmp_path / "pod5",
        output_bam=tmp_path / "reads.bam",
        samtools_executable=str(fake_samtools),
    )

    # Act
    conversions = process_conversion(run, config, skip_unbarcoded=False, dry_run=False)

    # Assert
    assert len(conversions) == 2
    assert sorted(x.name for x in run.fastq_dir.iterdir()) == ["barcode01.fastq.gz", "barcode12.fastq.gz"]
    assert gzip.decompress((run.fastq_dir / "barcode12.fastq.gz").read_bytes()) == b"reads-barcode12\n"


def test_process_conversion_without_bams(tmp_path: Path):
    # Arrange
    run = WorkflowRun(tmp_path)
    run.demux_dir.mkdir(parents=True)
    config = WorkflowConfig(dorado_executable=Path("dorado"), input_dir=tmp_path, output_bam=tmp_path / "reads.bam")

    # Act & Assert
    with pytest.raises(NoDemultiplexedBamsError):
        process_conversion(run, config, skip_unbarcoded=False, dry_run=False)
    assert not run.fastq_dir.exists()


def test_process_conversion_dry_run(tmp_path: Path):
    # Arrange
    run = WorkflowRun(tmp_path)
    run.demux_dir.mkdir(parents=True)
    (run.demux_dir / "run1_barcode01.bam").touch()
    config = WorkflowConfig(dorado_executable=Path("dorado"), input_dir=tmp_path, output_bam=tmp_path / "reads.bam")

    # Act
    conversions = process_conversion(run, config, skip_unbarcoded=False, dry_run=True)

    # Assert
    assert [conversion.fastq.name for conversion in conversions] == ["barcode01.fastq.gz"]
    assert not run.fastq_dir.exists()

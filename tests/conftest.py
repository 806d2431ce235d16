import stat
from pathlib import Path
from typing import Callable, Sequence

import pytest


@pytest.fixture
def make_executable(tmp_path: Path) -> Callable[[str, str], Path]:
    bin_dir = tmp_path / "bin"

    def _make_executable(name: str, script: str) -> Path:
        bin_dir.mkdir(parents=True, exist_ok=True)
        executable = bin_dir / name
        executable.write_text(script, encoding="utf-8")
        executable.chmod(executable.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return executable

    return _make_executable


@pytest.fixture
def dorado_args_log(tmp_path: Path) -> Path:
    return tmp_path / "dorado_args.txt"


@pytest.fixture
def make_dorado(make_executable, dorado_args_log: Path) -> Callable[..., Path]:
    # Fake dorado: basecaller prints a fixed BAM, demux writes one BAM per barcode
    def _make_dorado(barcodes: Sequence[str] = ("barcode01", "barcode12"), exit_code: int = 0) -> Path:
        script = f"""\
#!/bin/sh
echo "$@" >> "{dorado_args_log}"
if [ {exit_code} -ne 0 ]; then
    exit {exit_code}
fi
case "$1" in
    basecaller)
        printf 'combined-bam\\n'
        ;;
    demux)
        while [ $# -gt 0 ]; do
            if [ "$1" = "--output-dir" ]; then
                outdir="$2"
            fi
            shift
        done
        for barcode in {" ".join(barcodes)}; do
            printf 'reads-%s\\n' "$barcode" > "$outdir/run1_$barcode.bam"
        done
        ;;
esac
"""
        return make_executable("dorado", script)

    return _make_dorado


@pytest.fixture
def fake_samtools(make_executable) -> Path:
    # "samtools fastq <bam>" prints the BAM content as is
    return make_executable("samtools", '#!/bin/sh\ncat "$2"\n')


@pytest.fixture
def failing_samtools(make_executable) -> Path:
    return make_executable("samtools", "#!/bin/sh\nexit 5\n")


@pytest.fixture
def failing_gzip(make_executable) -> Path:
    return make_executable("gzip", "#!/bin/sh\nexit 4\n")

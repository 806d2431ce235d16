from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import doradoflow.filenames as fn


@dataclass
class WorkflowRun:
    # Input attributes
    work_dir: Path

    # Derived attributes
    config_file: Path = field(init=False)

    # Demultiplexing
    demux_dir: Path = field(init=False)

    # Conversion
    fastq_dir: Path = field(init=False)

    def __post_init__(self):
        self.config_file = self.work_dir / fn.WORKFLOW_CONFIG
        self.demux_dir = self.work_dir / fn.DEMUX_DIR
        self.fastq_dir = self.work_dir / fn.FASTQ_DIR

    def get_demultiplexed_bams(self) -> List[Path]:
        # Regular files only, sorted by name
        return sorted(bam for bam in self.demux_dir.glob(fn.BAM_PATTERN) if bam.is_file())

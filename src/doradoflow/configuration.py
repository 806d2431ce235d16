import json
from dataclasses import dataclass
from pathlib import Path

from doradoflow.constants import (
    DEFAULT_BASECALLING_MODEL,
    DEFAULT_DEVICE,
    DEFAULT_KIT_NAME,
    GZIP_EXECUTABLE,
    SAMTOOLS_EXECUTABLE,
)
from doradoflow.utils import write_to_file


@dataclass
class WorkflowConfig:
    dorado_executable: Path
    input_dir: Path
    output_bam: Path
    kit_name: str = DEFAULT_KIT_NAME
    basecalling_model: str = DEFAULT_BASECALLING_MODEL
    device: str = DEFAULT_DEVICE
    samtools_executable: str = SAMTOOLS_EXECUTABLE
    gzip_executable: str = GZIP_EXECUTABLE

    def save(self, path: Path):
        content = json.dumps(
            {
                "dorado_executable": str(self.dorado_executable),
                "input_dir": str(self.input_dir),
                "output_bam": str(self.output_bam),
                "kit_name": self.kit_name,
                "basecalling_model": self.basecalling_model,
                "device": self.device,
                "samtools_executable": self.samtools_executable,
                "gzip_executable": self.gzip_executable,
            },
            indent=4,
        )
        write_to_file(path, content)

    @classmethod
    def load(cls, path: Path):
        with open(path, "r", encoding="utf-8") as f:
            config = json.load(f)

        return cls(
            dorado_executable=Path(config["dorado_executable"]),
            input_dir=Path(config["input_dir"]),
            output_bam=Path(config["output_bam"]),
            kit_name=config["kit_name"],
            basecalling_model=config["basecalling_model"],
            device=config["device"],
            samtools_executable=config["samtools_executable"],
            gzip_executable=config["gzip_executable"],
        )


def resolve_kit_name(kit_name: str | None) -> str:
    # An empty kit name counts as not supplied
    return kit_name if kit_name else DEFAULT_KIT_NAME

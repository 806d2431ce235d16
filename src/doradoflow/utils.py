import os
import shlex
from pathlib import Path
from typing import Sequence


def write_to_file(file_path: Path, content: str):
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        f.write(content)


def format_command(cmd: Sequence[str | Path]) -> str:
    return shlex.join(str(x) for x in cmd)


def exit_code_from_returncode(returncode: int) -> int:
    # Processes killed by a signal report -N, the shell reports 128 + N
    if returncode < 0:
        return 128 - returncode
    return returncode


def is_complete_pod5_file(path: Path) -> bool:
    # Pod5 docs: https://pod5-file-format.readthedocs.io/en/latest/SPECIFICATION.html#combined-file-layout
    pattern = bytes((0x8B, 0x50, 0x4F, 0x44, 0xD, 0xA, 0x1A, 0x0A))
    pattern_len = len(pattern)

    fd = os.open(path, os.O_RDONLY)
    try:
        # Check if the file starts with the pattern
        header = os.read(fd, pattern_len)
        if header != pattern:
            return False

        # Check if the file ends with the pattern
        os.lseek(fd, -pattern_len, os.SEEK_END)
        footer = os.read(fd, pattern_len)
        return footer == pattern
    finally:
        os.close(fd)

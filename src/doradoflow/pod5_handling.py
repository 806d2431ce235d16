from pathlib import Path

import pod5

from doradoflow import reporting
from doradoflow.logging_config import logger
from doradoflow.utils import is_complete_pod5_file


def contains_pod5_files(x: Path) -> bool:
    return any(x.glob("*.pod5"))


def get_sequencing_kit(pod5_dir: Path) -> str | None:
    # Get first complete pod5 file
    pod5_files = sorted(pod5_dir.glob("*.pod5"))
    first_complete_pod5_file = next((pod5_file for pod5_file in pod5_files if is_complete_pod5_file(pod5_file)), None)
    if first_complete_pod5_file is None:
        return None

    # Get run info from the first read
    try:
        with pod5.Reader(first_complete_pod5_file) as reader:
            first_pod5_read = next(reader.reads(), None)
            if first_pod5_read is None:
                return None
            sequencing_kit = first_pod5_read.run_info.sequencing_kit
    except (OSError, RuntimeError) as e:
        logger.warning("Could not read pod5 file %s: %s", first_complete_pod5_file, e)
        return None

    return sequencing_kit.upper() if sequencing_kit else None


def check_sequencing_kit(pod5_dir: Path, kit_name: str) -> bool:
    """
    Compare the kit recorded by the sequencer with the kit passed to the basecaller.

    Returns:
        False if the pod5 files report a different kit, otherwise True
    """
    if not contains_pod5_files(pod5_dir):
        logger.warning("No pod5 files found in %s", pod5_dir)
        reporting.warning(f"No pod5 files found in {pod5_dir}")
        return True

    sequencing_kit = get_sequencing_kit(pod5_dir)
    if sequencing_kit is None:
        logger.info("Could not read sequencing kit from pod5 files in %s", pod5_dir)
        return True

    if sequencing_kit != kit_name.upper():
        logger.warning("Kit %s does not match kit %s recorded in pod5 files", kit_name, sequencing_kit)
        reporting.warning(f"Kit {kit_name} does not match kit {sequencing_kit} recorded in pod5 files")
        return False

    return True

# Description: Filenames used in the doradoflow project.

# Workflow config
WORKFLOW_CONFIG = "doradoflow_config.json"

# Demultiplexing
DEMUX_DIR = "demux_bams"
BAM_PATTERN = "*.bam"

# Conversion
FASTQ_DIR = "results/fastq"
FASTQ_SUFFIX = ".fastq.gz"

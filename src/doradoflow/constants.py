# Dorado
DEFAULT_KIT_NAME = "SQK-RBK114-96"
DEFAULT_BASECALLING_MODEL = "sup"
DEFAULT_DEVICE = "cuda:all"

# Other tools
SAMTOOLS_EXECUTABLE = "samtools"
GZIP_EXECUTABLE = "gzip"

# Environment variables
ENV_WORK_DIR = "DORADOFLOW_WORK_DIR"
ENV_SAMTOOLS = "DORADOFLOW_SAMTOOLS"
ENV_GZIP = "DORADOFLOW_GZIP"

"""Constants used throughout Project-Upgrader."""

import re
from enum import Enum, IntEnum


class ProjectSchemaVersion(IntEnum):
    """Project config versions.

    Versions are ordered; a project only ever moves forward.
    """

    V1 = 1
    V2 = 2
    V3 = 3


class UpgradeStep(str, Enum):
    """Steps of the upgrade pipeline, in execution order."""

    STATE_COPY = "state-copy"
    REORGANIZE = "reorganize"
    CONFIG_REWRITE = "config-rewrite"
    METADATA_RESYNC = "metadata-resync"


UPGRADE_STEPS: tuple[UpgradeStep, ...] = (
    UpgradeStep.STATE_COPY,
    UpgradeStep.REORGANIZE,
    UpgradeStep.CONFIG_REWRITE,
    UpgradeStep.METADATA_RESYNC,
)

# Data sources
DEFAULT_SOURCE_NAME = "default"

# Migration directories generated by the CLI: <13 digit millis>_<name>
MIGRATION_NAME_PATTERN = re.compile(r"^([0-9]{13})_(.*)$")

# Metadata files that only exist in the single-source layout
LEGACY_METADATA_FILES = ("functions.yaml", "tables.yaml")
METADATA_VERSION_FILE = "version.yaml"

# Project layout
PROJECT_CONFIG_FILE = "config.yaml"
DEFAULT_METADATA_DIRECTORY = "metadata"
DEFAULT_MIGRATIONS_DIRECTORY = "migrations"
DEFAULT_SEEDS_DIRECTORY = "seeds"
DIRECTORY_MODE = 0o755

# Table-backed state store
DEFAULT_STATE_SCHEMA = "hdb_catalog"
DEFAULT_MIGRATIONS_TABLE = "schema_migrations"
DEFAULT_SETTINGS_TABLE = "migration_settings"

# Catalog-backed state store
CATALOG_STATE_TYPE = "cli"

# Metadata API
METADATA_API_PATH = "/v1/metadata"
QUERY_API_PATH = "/v2/query"
VERSION_API_PATH = "/v1/version"
ADMIN_SECRET_HEADER = "X-Hasura-Admin-Secret"
MIN_METADATA_V3_SERVER_MAJOR = 2

# Checkpoint database
DB_TABLE_CHECKPOINTS = "checkpoints"
CHECKPOINT_DOC_ID = 1
CHECKPOINT_STATUS_IN_PROGRESS = "in_progress"
CHECKPOINT_STATUS_COMPLETED = "completed"
DEFAULT_CHECKPOINT_FILE = ".upgrade-checkpoint.json"

# Network timeouts
NETWORK_OPERATION_TIMEOUT = 30.0  # Default timeout for API calls (seconds)

# Exit codes
EXIT_CODE_FAILURE = 1
EXIT_CODE_PRECONDITION = 2
EXIT_CODE_RESYNC = 3

# Logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

"""Constants used throughout SnapVCS."""

# Directory names
SNAPVCS_DIR = ".snapvcs"
OBJECTS_DIR = "objects"

# File names
HEAD_FILE = "HEAD"
INDEX_FILE = "index"
CONFIG_FILE = "config"

# Object kinds
KIND_BLOB = "blob"
KIND_TREE = "tree"
OBJECT_KINDS = (KIND_BLOB, KIND_TREE)

# Index tombstone marker (appended to an index line)
DELETED_MARKER = "deleted"

# Hash algorithm
HASH_ALGORITHM = "sha1"
HASH_LENGTH = 40  # SHA-1 produces 40 hex characters

# Compression
GZIP_LEVEL = 6
COMPRESSION_ENV_VAR = "SNAPVCS_COMPRESSION"

# Config schema version
CONFIG_SCHEMA_VERSION = 1

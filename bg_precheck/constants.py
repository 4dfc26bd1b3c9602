"""Fixed names, defaults and messages used by the Blue/Green precheck.

The warning sentences are part of the tool's output contract and are
reproduced verbatim in log files, so change them with care.
"""

# Databases that are never checked when a whole cluster is enumerated
EXCLUDED_DATABASES = ("rdsadmin", "template0", "template1")

# Schemas whose tables are ignored by the primary key / replica identity rule
SYSTEM_SCHEMAS = ("pg_catalog", "information_schema")

# Connection defaults
CONNECTION_DEFAULTS = {
    "port": 5432,
    "user": "postgres",
    "maintenance_database": "postgres",
    "connect_timeout": 10,  # seconds
    "application_name": "bg-precheck",
}

LOGGING_DEFAULTS = {
    "log_prefix": "bluegreen-precheck",
    "timestamp_format": "%Y%m%d_%H%M%S",
    "diagnostic_format": "%(asctime)s - %(levelname)s - %(message)s",
}

# pg_class.relreplident value for REPLICA IDENTITY FULL
REPLICA_IDENTITY_FULL = "f"

WARNINGS = {
    "large_objects": "The database {database} contains pg_largeobjects, which cannot be replicated.",
    "foreign_tables": "The database {database} contains foreign tables, which cannot be replicated.",
    "logical_replication_slots": "Logical replication slots exist in the cluster.",
}

PASS_MESSAGES = {
    "primary_key_replica_identity": "All tables in {database} have a primary key and REPLICA IDENTITY FULL",
    "large_objects": "No incompatible pg_largeobjects found",
    "foreign_tables": "No foreign tables exist on database {database}",
    "logical_replication_slots": "No logical replication slots found cluster-wide",
}

# Process exit codes
EXIT_CODES = {
    "ok": 0,
    "failure": 1,
    "usage": 2,
    "not_ready": 3,
}

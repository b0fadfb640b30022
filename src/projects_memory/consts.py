VERSION = "0.4.0"

# Version of the persisted JSON document layout.
SCHEMA_VERSION = 2

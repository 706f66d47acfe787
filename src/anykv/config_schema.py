"""
JSON schemas for configuration validation.
"""

OPEN_SCHEMA = {
    "type": "object",
    "properties": {
        "namespace": {"type": ["string", "null"]},
        "database": {"type": ["string", "null"]},
        "readonly": {"type": "boolean"},
        "auth": {
            "oneOf": [
                {"type": "null"},
                {"type": "string"},
                {
                    "type": "object",
                    "properties": {"user": {"type": "string"}, "pass": {"type": "string"}},
                    "required": ["user", "pass"],
                },
            ]
        },
    },
}

SQLITE_SCHEMA = {
    "allOf": [
        OPEN_SCHEMA,
        {
            "properties": {
                "path": {"type": "string", "minLength": 1},
                "wal": {"type": "boolean"},
            }
        },
    ]
}

SURREALDB_SCHEMA = {
    "allOf": [
        OPEN_SCHEMA,
        {
            "properties": {
                "url": {"type": "string", "pattern": "^https?://"},
                "namespace_header": {"type": "string", "minLength": 1},
                "database_header": {"type": "string", "minLength": 1},
            }
        },
    ]
}

REDIS_SCHEMA = {
    "allOf": [
        OPEN_SCHEMA,
        {
            "properties": {
                "host": {"type": "string", "minLength": 1},
                "port": {"type": "integer", "minimum": 1, "maximum": 65535},
                "password": {"type": ["string", "null"]},
                "db": {"type": "integer", "minimum": 0},
            }
        },
    ]
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
        "log_file": {"type": ["string", "null"]},
        "log_operations": {"type": "boolean"},
    },
}

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "backend": {"type": "string", "enum": ["sqlite", "surrealdb", "redis"]},
        "sqlite": SQLITE_SCHEMA,
        "surrealdb": SURREALDB_SCHEMA,
        "redis": REDIS_SCHEMA,
        "logging": LOGGING_SCHEMA,
    },
    "additionalProperties": False,
}

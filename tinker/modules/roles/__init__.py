"""
Roles Module - Black Box Interface

Purpose: Describe the service roles of the database cluster
Interface: RoleRegistry, default_registry(), Role
Hidden: Ordering tables, directory conventions

Pure data. Built once at process start and passed to whoever needs it.
"""

from .registry import (
    BACKUP_SUFFIX,
    BASE_DIR,
    LIVENESS_THRESHOLD,
    PD,
    PLACEHOLDER_FILE,
    TIDB,
    TIKV,
    ProbeTarget,
    Role,
    RoleRegistry,
    default_registry,
)

__all__ = [
    "BACKUP_SUFFIX",
    "BASE_DIR",
    "LIVENESS_THRESHOLD",
    "PD",
    "PLACEHOLDER_FILE",
    "TIDB",
    "TIKV",
    "ProbeTarget",
    "Role",
    "RoleRegistry",
    "default_registry",
]

"""
Tinker - Cold backup and restore for TiDB clusters on Kubernetes

Quiesces every pod of a TiDB cluster, snapshots or restores the data
directories in place, and brings the cluster back up.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- roles: Service roles and their ordering
- scripts: Shell programs run inside containers
- executor: Remote exec with retry
- cluster: Pod discovery and mutation
- orchestrator: Lifecycle operations and cold cycles
- api: Shared data models
"""

__version__ = "1.0.0"

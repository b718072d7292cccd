from .layout_auditor import (
    AuditOptions,
    GraphNotReadyError,
    GraphSnapshotProvider,
    LayoutAuditor,
    WindowGraphProvider,
    audit_layout,
)

__all__ = [
    "AuditOptions",
    "GraphNotReadyError",
    "GraphSnapshotProvider",
    "LayoutAuditor",
    "WindowGraphProvider",
    "audit_layout",
]

from context_lint.workspace.discovery import discover_workspace
from context_lint.workspace.schemas import CrateSource, WorkspaceLayout

__all__ = ["CrateSource", "WorkspaceLayout", "discover_workspace"]

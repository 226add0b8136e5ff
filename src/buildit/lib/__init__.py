"""Library utilities for agent-driven game improvement.

Modules:
- client: Agent SDK adapter (options, message translation, streaming)
- hooks: Claude Agent SDK hook utilities (write guard, tool allowlist)
- locks: Per-game exclusion for concurrent improvement requests
- metadata: Per-game metadata record and its atomic persistence
- paths: Game directory layout and id validation
- protect: Read-only permissions for framework files
- registry: Game id to room handler table
- session_policy: Resume-or-fresh decision and reconciliation
- usage: Agent events and token/cost accounting
- verifier: TypeScript check of edited server files
"""

from buildit.lib.client import AgentRequest, AgentRunner, build_client, stream_agent
from buildit.lib.hooks import (
    HooksConfig,
    create_tool_allowlist_hook,
    create_write_guard_hooks,
    merge_hooks,
)
from buildit.lib.locks import GameBusyError, GameLocks
from buildit.lib.metadata import (
    GameMetadata,
    MetadataCorruptError,
    MetadataError,
    MetadataNotFoundError,
    load_metadata,
    save_metadata,
)
from buildit.lib.registry import GameRegistry, RoomHandler, RoomRegistrationError
from buildit.lib.session_policy import (
    Directive,
    SessionDecision,
    SessionReason,
    SessionThresholds,
    begin_invocation,
    decide,
    reconcile,
)
from buildit.lib.usage import (
    AgentEvent,
    InvocationOutcome,
    TokenUsage,
    UsageTracker,
)
from buildit.lib.verifier import VerificationResult, VerificationStatus, verify_game

__all__ = [
    # Client
    "AgentRequest",
    "AgentRunner",
    "build_client",
    "stream_agent",
    # Hooks
    "HooksConfig",
    "create_tool_allowlist_hook",
    "create_write_guard_hooks",
    "merge_hooks",
    # Locks
    "GameBusyError",
    "GameLocks",
    # Metadata
    "GameMetadata",
    "MetadataCorruptError",
    "MetadataError",
    "MetadataNotFoundError",
    "load_metadata",
    "save_metadata",
    # Registry
    "GameRegistry",
    "RoomHandler",
    "RoomRegistrationError",
    # Session policy
    "Directive",
    "SessionDecision",
    "SessionReason",
    "SessionThresholds",
    "begin_invocation",
    "decide",
    "reconcile",
    # Usage
    "AgentEvent",
    "InvocationOutcome",
    "TokenUsage",
    "UsageTracker",
    # Verifier
    "VerificationResult",
    "VerificationStatus",
    "verify_game",
]

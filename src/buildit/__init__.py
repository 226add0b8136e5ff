"""BuildIt: an agent that builds and improves multiplayer browser games.

Structure:
- buildit/agent/: Agent-facing code
  - config.py: Configuration via pydantic-settings
  - models.py: Result models returned to callers
  - prompts.py: Generation and improvement prompts
  - tool_policy.py: Tool sets for generation and improvement runs

- buildit/lib/: Session continuity and the machinery around an agent run
  - session_policy.py: Resume-or-fresh decision and metadata reconciliation
  - metadata.py, usage.py, client.py, verifier.py, registry.py, ...

- buildit/environment/: Game lifecycle (scaffolding, improvement, CLI)
"""

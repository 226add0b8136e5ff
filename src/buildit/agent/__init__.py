"""Agent-facing configuration, prompts, and result models.

- config.py: Configuration via pydantic-settings
- models.py: Result models (ImproveResult, SessionInfo, GameSummary, GenerateResult)
- prompts.py: Generation and improvement prompts
- tool_policy.py: Tool sets per run kind
"""

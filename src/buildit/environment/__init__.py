"""Game lifecycle around the agent.

This package contains the domain scaffolding:
- generator.py: Scaffold a new game from a prompt
- improver.py: Apply improvement requests with session continuity
- templates.py: Skeleton files for new games
- cli/: Typer command line entry point
"""

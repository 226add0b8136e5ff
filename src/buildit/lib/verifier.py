"""Post-edit TypeScript check for game server files.

After the agent edits a game, ``room.ts`` and ``state.ts`` are compiled
with ``tsc --noEmit --strict``. The check never fails an improvement: the
edits and their cost are already committed, so a failing compile only
changes the message returned to the user.

The compiler runs through ``sh`` in a worker thread so the event loop
stays free while it runs.
"""

import asyncio
import logging
from enum import StrEnum
from pathlib import Path

import sh
from pydantic import BaseModel

logger = logging.getLogger(__name__)

CHECKED_FILES = ("room.ts", "state.ts")
TSC_FLAGS = ("--noEmit", "--strict", "--esModuleInterop", "--skipLibCheck")

SCHEMA_ERROR_HINT = "does not exist on type"


class VerificationStatus(StrEnum):
    CLEAN = "clean"
    WARNINGS = "warnings"
    ERRORS = "errors"
    UNAVAILABLE = "unavailable"


class VerificationResult(BaseModel):
    """Outcome of one type check."""

    status: VerificationStatus
    output: str = ""

    @property
    def has_errors(self) -> bool:
        return self.status is VerificationStatus.ERRORS


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def _run_tsc(game_dir: Path, launcher: str) -> VerificationResult:
    try:
        cmd = sh.Command(launcher)
    except sh.CommandNotFound as e:
        return VerificationResult(
            status=VerificationStatus.UNAVAILABLE, output=f"{launcher} not found: {e}"
        )

    try:
        proc = cmd(
            "tsc",
            *CHECKED_FILES,
            *TSC_FLAGS,
            _cwd=str(game_dir),
            _return_cmd=True,
        )
    except sh.ErrorReturnCode as e:
        output = _decode(e.stdout) or _decode(e.stderr) or str(e)
        return VerificationResult(status=VerificationStatus.ERRORS, output=output)

    stdout = _decode(proc.stdout).strip()
    stderr = _decode(proc.stderr).strip()
    if stdout or stderr:
        return VerificationResult(
            status=VerificationStatus.WARNINGS,
            output="\n".join(part for part in (stderr, stdout) if part),
        )
    return VerificationResult(status=VerificationStatus.CLEAN)


async def verify_game(game_dir: Path, *, launcher: str = "npx") -> VerificationResult:
    """Type-check the edited server files of a game.

    Args:
        game_dir: The game's working directory.
        launcher: Executable that provides ``tsc`` (``npx`` by default).

    Returns:
        The check outcome; compiler failures are reported, not raised.
    """
    logger.info("Running TypeScript compilation check in %s", game_dir)
    result = await asyncio.to_thread(_run_tsc, game_dir, launcher)

    match result.status:
        case VerificationStatus.CLEAN:
            logger.info("TypeScript compilation check passed")
        case VerificationStatus.WARNINGS:
            logger.warning("TypeScript output:\n%s", result.output)
        case VerificationStatus.ERRORS:
            logger.error("TypeScript compilation errors found:\n%s", result.output)
            if SCHEMA_ERROR_HINT in result.output:
                logger.error(
                    "Tip: make sure all properties are defined in state.ts "
                    "with @type decorators"
                )
        case VerificationStatus.UNAVAILABLE:
            logger.warning("TypeScript check skipped: %s", result.output)

    return result

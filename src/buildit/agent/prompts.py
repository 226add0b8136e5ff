"""Prompts for game generation and improvement runs.

Key patterns:
1. The task prompt carries the user's request and the hard rules
2. The appended system prompt states whether history is available
3. Framework rules that apply to every run live in the game's CLAUDE.md,
   so they are not repeated here
"""

TYPECHECK_COMMAND = "npx tsc room.ts state.ts --noEmit --strict"

_IMPROVE_PROMPT_TEMPLATE = """\
You are improving an existing 3D multiplayer game called "{name}".

Previous context: {description}

User's improvement request: {request}

IMPORTANT REQUIREMENTS:
1. Implement the requested improvement by MODIFYING the existing files
2. Use MultiEdit to make your changes - do not just read files
3. Focus ONLY on the requested improvement
4. Helper functions that create meshes MUST return the created object
5. To iterate over active players, use: Array.from(this.playerModel.models.keys())
6. When adding properties to Player or GameState, add them to state.ts with
   @type decorators first, e.g. @type("string") assignedGoal: string = "";
7. After making changes, run: {typecheck}
8. Fix any TypeScript errors before completing, especially
   "Property does not exist" errors

FILES YOU CAN MODIFY:
- client.js (game client logic)
- room.ts (server-side room logic)
- state.ts (game state management)
- index.html (if needed for UI changes)

RESTRICTIONS:
- The shared/ directory is read-only (core game engine files)
- Do not create new files unless absolutely necessary
"""

_IMPROVE_SYSTEM_APPEND = """\
You are improving an existing game.
{history}
Focus on the requested improvement only.
DO NOT create new files unless absolutely necessary.
DO NOT modify files in the shared/ directory.
ALWAYS run '{typecheck}' after making TypeScript changes and fix any errors.
"""

_RESUMED_HISTORY = "The session history contains all previous changes."
_FRESH_HISTORY = "Starting fresh - analyze the current code state."

_GENERATE_PROMPT_TEMPLATE = """\
You are an expert game developer creating 3D multiplayer games for the BuildIt platform.

Create a 3D multiplayer game called "{name}" based on this description: {description}

Reference the shared base files and build the game on top of them. The template
files you should edit are already in place; fill out the required parts.
The room class in room.ts must stay exported as {room_class}.
"""


def get_improve_prompt(*, name: str, description: str, request: str) -> str:
    """Task prompt for one improvement run."""
    return _IMPROVE_PROMPT_TEMPLATE.format(
        name=name,
        description=description,
        request=request,
        typecheck=TYPECHECK_COMMAND,
    )


def get_improve_system_append(*, resumed: bool) -> str:
    """System prompt addition; tells the agent whether history is available."""
    return _IMPROVE_SYSTEM_APPEND.format(
        history=_RESUMED_HISTORY if resumed else _FRESH_HISTORY,
        typecheck=TYPECHECK_COMMAND,
    )


def get_generate_prompt(*, name: str, description: str, room_class: str) -> str:
    """Task prompt for scaffolding a new game."""
    return _GENERATE_PROMPT_TEMPLATE.format(
        name=name, description=description, room_class=room_class
    )

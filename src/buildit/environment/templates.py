"""Skeleton files written into a new game before the agent fills it in.

Templates use ``string.Template`` placeholders (``$name``); a literal
dollar sign is written ``$$``. The skeletons avoid JavaScript template
literals so they stay readable here.
"""

from pathlib import Path
from string import Template

CLIENT_TEMPLATE = Template("""\
// $name - Client Side (3D)
class $class_stem extends BaseGame {
  constructor(canvasId) {
    super(canvasId);
  }

  setupScene() {
    // Player model system must be initialized first
    this.playerModel = new PlayerModel(this.scene);

    this.createGround(40);

    const light = new BABYLON.DirectionalLight("dirLight",
      new BABYLON.Vector3(-1, -2, -1), this.scene);
    light.intensity = 0.5;
  }

  onStateUpdate(state) {
    state.players.forEach((player, id) => {
      if (!this.playerModel.getPlayerMesh(id)) {
        this.playerModel.loadPlayerModel(id, { x: player.x, y: player.y, z: player.z });
        if (id === this.room.sessionId) {
          this.currentPlayer = this.playerModel.getPlayerMesh(id);
          this.mySessionId = id;
        }
      }
    });

    this.handlePlayerUpdates(state.players);

    Array.from(this.playerModel.models.keys()).forEach((id) => {
      if (!state.players.has(id)) {
        this.playerModel.removePlayerModel(id);
      }
    });
  }

  update() {
    // Per-frame client logic
  }
}

window.addEventListener("load", () => {
  new $class_stem("gameCanvas").connect("$game_id");
});
""")

ROOM_TEMPLATE = Template("""\
// $name - Server Room
import { Room, Client } from "colyseus";
import { GameState, Player } from "./state";

export class $room_class extends Room<GameState> {
  maxClients = 4;

  onCreate(options: any) {
    this.setState(new GameState());

    this.onMessage("move", (client, data) => {
      const player = this.state.players.get(client.sessionId);
      if (player) {
        player.x = data.x;
        player.y = data.y;
        player.z = data.z;
        player.rotation = data.rotation;
        player.isMoving = true;
      }
    });

    this.onMessage("stopMove", (client) => {
      const player = this.state.players.get(client.sessionId);
      if (player) {
        player.isMoving = false;
      }
    });

    this.setSimulationInterval((deltaTime) => this.update(deltaTime), 1000 / 60);
  }

  onJoin(client: Client, options: any) {
    const player = new Player();
    player.id = client.sessionId;
    player.x = Math.random() * 10 - 5;
    player.z = Math.random() * 10 - 5;
    this.state.players.set(client.sessionId, player);
  }

  onLeave(client: Client, consented: boolean) {
    this.state.players.delete(client.sessionId);
  }

  update(deltaTime: number) {
    // Server game loop, 60 times per second
  }
}
""")

STATE_TEMPLATE = Template("""\
// $name - Game State
import { Schema, type, MapSchema } from "@colyseus/schema";

export class Player extends Schema {
  @type("string") id: string = "";
  @type("number") x: number = 0;
  @type("number") y: number = 0;
  @type("number") z: number = 0;
  @type("number") rotation: number = 0;
  @type("number") score: number = 0;
  @type("boolean") ready: boolean = false;
  @type("boolean") isMoving: boolean = false;
}

export class GameState extends Schema {
  @type({ map: Player }) players = new MapSchema<Player>();
  @type("boolean") gameStarted: boolean = false;
  @type("string") winnerId: string = "";

  // Add game state properties here, each with an @type decorator
}
""")

INDEX_TEMPLATE = Template("""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>$name</title>
    <style>
        body { margin: 0; background-color: #0a0a0a; overflow: hidden; font-family: Arial, sans-serif; }
        #gameCanvas { width: 100vw; height: 100vh; display: block; }
        .game-info { position: absolute; top: 20px; left: 50%; transform: translateX(-50%); color: white; z-index: 10; }
    </style>
</head>
<body>
    <div class="game-info">
        <h1>$name</h1>
        <div id="status">Waiting for players...</div>
    </div>
    <canvas id="gameCanvas"></canvas>

    <script src="https://unpkg.com/colyseus.js@^0.16.0/dist/colyseus.js"></script>
    <script src="https://cdn.babylonjs.com/babylon.js"></script>
    <script src="https://cdn.babylonjs.com/gui/babylon.gui.min.js"></script>
    <script src="../../shared/BaseGame.js"></script>
    <script src="../../shared/PlayerModel.js"></script>
    <script src="../../platform/PlatformUI.js"></script>
    <script src="client.js"></script>
    <script>
        window.addEventListener("load", () => {
            if (window.PlatformUI && window.PlatformUI.init) {
                window.PlatformUI.init({ gameId: "$game_id", showImprove: true, showChat: false });
            }
        });
    </script>
</body>
</html>
""")

GUIDELINES_TEMPLATE = Template("""\
# BuildIt 3D Game Guidelines

## Project Context
- Platform: BuildIt multiplayer framework (Colyseus server, Babylon.js client)
- Language: TypeScript 4.9.5, strict mode
- Room class: `$room_class` exported from room.ts (do not rename it)

## Shared Files (READ-ONLY)
- shared/BaseGame.js: client base class (scene, camera, engine, gui, movement)
- shared/PlayerModel.js: player character models

These files have chmod 444. Read them; never edit them.

## Client Rules
1. First line of setupScene(): `this.playerModel = new PlayerModel(this.scene);`
2. In onStateUpdate(): create missing player models with loadPlayerModel(),
   set currentPlayer for `this.room.sessionId`, call handlePlayerUpdates(),
   and remove models for players no longer in state
3. getPlayer/createPlayer/removePlayer do not exist
4. Y is up in Babylon.js

## State Rules
- Every state property needs an @type decorator
- Add properties to state.ts before using them in room.ts

## Checks
Your code is compiled with `npx tsc room.ts state.ts --noEmit --strict`
before it is accepted.
""")

SKELETON_FILES: dict[str, Template] = {
    "client.js": CLIENT_TEMPLATE,
    "room.ts": ROOM_TEMPLATE,
    "state.ts": STATE_TEMPLATE,
    "index.html": INDEX_TEMPLATE,
    "CLAUDE.md": GUIDELINES_TEMPLATE,
}


def write_skeleton(game_dir: Path, *, name: str, game_id: str, room_class: str) -> list[Path]:
    """Write every skeleton file into ``game_dir``.

    Returns:
        Paths of the written files.
    """
    values = {
        "name": name,
        "game_id": game_id,
        "room_class": room_class,
        "class_stem": room_class.removesuffix("Room") + "Game",
    }
    written: list[Path] = []
    for filename, template in SKELETON_FILES.items():
        path = game_dir / filename
        path.write_text(template.substitute(values), encoding="utf-8")
        written.append(path)
    return written

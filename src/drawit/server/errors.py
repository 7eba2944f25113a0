"""Error taxonomy for the game server.

Every error is raised before any state is touched. `StateConflict` errors are
reported back to the requesting client as ``{"ok": false, "message": ...}``;
the rest map to an HTTP error status.
"""

from __future__ import annotations


class GameError(Exception):
    status_code = 400
    message = "Invalid request."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.message
        super().__init__(self.message)


class ValidationFailed(GameError):
    status_code = 400
    message = "Invalid request."


class PayloadTooLarge(ValidationFailed):
    status_code = 413
    message = "Request body too large."


class UnknownPlayer(GameError):
    status_code = 401
    message = "Unknown player."


class LobbyFull(GameError):
    status_code = 403

    def __init__(self, max_players: int) -> None:
        super().__init__(f"Lobby full. Max {max_players} players.")


class StateConflict(GameError):
    status_code = 200


class AlreadyActive(StateConflict):
    message = "A round is already in progress."


class InsufficientPlayers(StateConflict):
    def __init__(self, min_players: int = 2) -> None:
        super().__init__(f"Need at least {min_players} players to start.")


class NoActiveRound(StateConflict):
    message = "No active round."


class DrawerCannotGuess(StateConflict):
    message = "Drawer cannot guess."


class EmptyGuess(StateConflict):
    message = "Empty guess ignored."


class AlreadyGuessed(StateConflict):
    message = "Already guessed correctly."


class NotDrawer(StateConflict):
    message = "Only the drawer can do that."


class UnknownAction(StateConflict):
    message = "Unknown action."

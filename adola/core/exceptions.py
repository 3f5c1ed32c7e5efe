
class GameError(Exception):
    """Base class for errors raised by stateful game rounds."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RoundStateError(GameError):
    """The requested action is not allowed in the round's current state."""

    status_code = 409


class UnknownProfileError(GameError):
    status_code = 404

    def __init__(self, name: str):
        super().__init__(f"Unknown crash game: {name}")
        self.name = name

# bots/exceptions.py


class ConfigurationError(ValueError):
    """Bot configuration that cannot be simulated"""


class BotNotFound(LookupError):
    """No bot registered under the requested id"""


class DuplicateBotError(ValueError):
    """A bot with this id is already registered"""


class ReservedIdError(ValueError):
    """Id belongs to the user-copy namespace and cannot own a state machine"""


class CopyNotFound(LookupError):
    """No user copy stored under the requested id"""


class CopyStateError(ValueError):
    """Copy lifecycle transition not allowed from its current status"""

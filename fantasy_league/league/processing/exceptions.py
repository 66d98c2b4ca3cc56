"""
Errors raised by the league engine and the warning categories it logs.
"""


class LeagueEngineError(Exception):
    pass


class EligibilityError(LeagueEngineError):
    """
    A submission was rejected.

    `code` tells the caller why, so it can show a precise message:
    already_used, unknown_entity, round_locked, duplicate_driver,
    incomplete_selection or not_a_member.
    """

    ALREADY_USED = 'already_used'
    UNKNOWN_ENTITY = 'unknown_entity'
    ROUND_LOCKED = 'round_locked'
    DUPLICATE_DRIVER = 'duplicate_driver'
    INCOMPLETE_SELECTION = 'incomplete_selection'
    NOT_A_MEMBER = 'not_a_member'

    def __init__(self, code, message, entity=None, role=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.entity = entity
        self.role = role

    def as_dict(self):
        return {
            'code': self.code,
            'message': self.message,
            'entity': self.entity,
            'role': self.role,
        }


class DataIncompleteError(LeagueEngineError):
    """Results or team aggregate missing when a round completes"""


class ReferenceDriftWarning(UserWarning):
    """A selection pointed at a stale race row and was repointed"""


class ValidationMismatchWarning(UserWarning):
    """Recomputed base points disagree with the raw results lookup"""

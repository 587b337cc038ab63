from observer.domain.models.agent_state import DirectiveKind


class PreProcessingError(Exception):
    """Failure in the resolution loop itself, not in a capability provider"""


class DirectiveIterationLimitExceeded(PreProcessingError):
    """A directive kept reappearing after being resolved"""

    def __init__(self, kind: DirectiveKind, limit: int):
        self.kind = kind
        self.limit = limit
        super().__init__(f"{kind.value} reintroduced more than {limit} times in one pass")

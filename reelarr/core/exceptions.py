# reelarr/core/exceptions.py


class ReelarrError(Exception):
    """Base class for errors raised by reelarr services."""


class PatternNotFound(ReelarrError, LookupError):
    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"Pattern {ref} not found")


class RssFeedError(ReelarrError):
    """The upstream feed could not be fetched or is not an XML document."""


class TmdbError(ReelarrError):
    pass


class RadarrError(ReelarrError):
    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)

class QuotalineError(Exception):
    """
    base class for every error raised by quotaline.
    """


class InputError(QuotalineError):
    """
    raised when the stdin document from the host cannot be parsed.
    This is the only fatal error of a run.
    """


class ConfigError(QuotalineError):
    pass


class CacheDecodeError(QuotalineError):
    pass


class CredentialsError(QuotalineError):
    pass


class UsageFetchError(QuotalineError):
    """
    raised for any failure of the remote usage request. status_code
    is set when the API answered with a non-200 status.
    """

    def __init__(self, message: "str", status_code: "int | None" = None) -> "None":
        super().__init__(message)
        self.status_code = status_code


class SnapshotResolveError(QuotalineError):
    pass

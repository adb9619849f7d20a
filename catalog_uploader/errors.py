"""Error types shared across the uploader."""


class UploaderError(RuntimeError):
    """Base error type."""


class ConfigurationError(UploaderError):
    """
    Fatal startup problem.

    Raised for a missing credential, an unreadable root, an unreachable or
    malformed remote index, a missing integrity tool or an invalid config
    file. Always surfaces before any file is processed.
    """

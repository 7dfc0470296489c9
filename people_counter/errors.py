class PeopleCounterError(Exception):
    """
    Base class for errors raised by the people counter.
    """


class InvalidDetectionError(PeopleCounterError, ValueError):
    """
    A detection carried a NaN or infinite coordinate.
    """


class ConfigError(PeopleCounterError, ValueError):
    """
    The configuration file has unknown keys or out-of-range values.
    """


class VideoSourceError(PeopleCounterError, RuntimeError):
    """
    The video source could not be opened.
    """

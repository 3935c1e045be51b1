class ConfigurationException(Exception):
    """CLI configuration error. Indicates CLI parameters or configuration values are inconsistent or invalid."""

    pass


class RunAlreadyActive(ConfigurationException):
    """Another forecast run with the same trigger type is still running."""

    pass


class DatabaseConnectionFailure(Exception):
    """Database cannot be accessed or network connection cannot be established."""

    pass


class DataException(Exception):
    """Could not find data, data is empty or failed validation."""

    pass


class FeedTimeout(DataException):
    """Reading an input feed did not finish before the deadline of the current forecast run."""

    pass

class TileImageryError(Exception):
    """Base exception for tile imagery providers"""
    pass


class ConfigurationError(TileImageryError, ValueError):
    """Provider options that cannot be turned into a usable configuration"""
    pass


class UsageError(TileImageryError, RuntimeError):
    """Provider used in a way its contract forbids, e.g. before it is ready"""
    pass

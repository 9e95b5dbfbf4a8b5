from providers.base import StatusFetcher
from providers.mcsrvstat import McSrvStatFetcher

__all__ = ["StatusFetcher", "McSrvStatFetcher"]

from .factory import ProviderFactory

__all__ = ["ProviderFactory"]

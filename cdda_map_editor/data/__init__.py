from .loader import DataLoader, recurse_files

__all__ = ["DataLoader", "recurse_files"]

"""Byte storage contract for registry files."""

from .storage_repository import IFileStorageRepository

__all__ = ["IFileStorageRepository"]

from .lookup_service import LookupEntry, LookupService, lookup_service

__all__ = ["LookupEntry", "LookupService", "lookup_service"]

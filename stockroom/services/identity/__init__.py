from stockroom.services.identity.client import IdentityClient

__all__ = ["IdentityClient"]

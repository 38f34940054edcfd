from core.services.user_lookup import UserLookupFacade

__all__ = ["UserLookupFacade"]

from wingman.domains.profiles.service import ProfileService

__all__ = ["ProfileService"]

from wingman.domains.wingman.service import WingmanAnalysis, WingmanService

__all__ = ["WingmanAnalysis", "WingmanService"]

from wingman.domains.bot.service import BotService

__all__ = ["BotService"]

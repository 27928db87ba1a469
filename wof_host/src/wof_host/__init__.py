from .session import GameSession, build_session

__all__ = ["GameSession", "build_session"]

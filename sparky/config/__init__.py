from sparky.config.settings import settings

__all__ = ["settings"]

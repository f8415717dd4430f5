from polyrc.tui.renderers import ConsoleUI

__all__ = ["ConsoleUI"]

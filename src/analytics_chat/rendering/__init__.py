from analytics_chat.rendering.markdown import parse_markdown, tokenize_inline
from analytics_chat.rendering.terminal_renderer import TerminalRenderer

__all__ = ["TerminalRenderer", "parse_markdown", "tokenize_inline"]

"""
ANSI color codes for terminal output.

Provides consistent color formatting for the command-line tools.
"""

# Standard ANSI color codes
RED = '\033[91m'
GREEN = '\033[92m'
YELLOW = '\033[93m'
CYAN = '\033[96m'
RESET = '\033[0m'


def colorize(text: str, color: str) -> str:
    """Wrap text in a color code and a reset."""
    return f"{color}{text}{RESET}"

"""sshchat -- live terminal chat interface over SSH.

Each interactive SSH session gets its own terminal engine: keystrokes are
captured and decoded in the background, committed lines are kept in a
small message log, and the scrollback plus prompt is redrawn with ANSI
escape codes whenever the state changes or the window is resized.
"""

__version__ = "0.1.0"

"""Best-effort clipboard egress for copied repository paths."""

from __future__ import annotations

import os
import shutil
import subprocess
import sys

from loguru import logger


def clipboard_commands() -> list[list[str]]:
    if sys.platform == "darwin":
        return [["pbcopy"]]
    if os.name == "nt":
        return [["clip"]]
    return [
        ["wl-copy"],
        ["xclip", "-selection", "clipboard"],
        ["xsel", "--clipboard", "--input"],
    ]


def copy_text_to_clipboard(text: str) -> bool:
    """Copy ``text`` with the first available tool; failures only return ``False``."""
    if not text:
        return False

    for command in clipboard_commands():
        if shutil.which(command[0]) is None:
            continue
        try:
            proc = subprocess.run(
                command,
                input=text,
                text=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError as exc:
            logger.debug("clipboard tool {} failed to start: {}", command[0], exc)
            continue
        if proc.returncode == 0:
            return True
    return False


__all__ = ["clipboard_commands", "copy_text_to_clipboard"]

"""
Fallback that hands unrecognized commands to the ollama executable.
"""

import logging
import shutil
import subprocess
from collections.abc import Sequence

from owllama.core.errors import ExecutableNotFoundError

logger = logging.getLogger(__name__)

FORWARD_EXECUTABLE = "ollama"


def forward_to_ollama(args: Sequence[str], executable: str = FORWARD_EXECUTABLE) -> int:
    """
    Run ``executable`` with ``args``, inheriting stdin, stdout and stderr.

    Returns:
        The child's exit status

    Raises:
        ExecutableNotFoundError: If the executable is not on PATH
    """
    path = shutil.which(executable)
    if path is None:
        raise ExecutableNotFoundError(f"Could not find {executable} executable in PATH.")

    logger.debug(f"Forwarding to {path}: {list(args)}")
    return subprocess.run([path, *args]).returncode

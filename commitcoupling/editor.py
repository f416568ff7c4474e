"""Launch an external code editor for a file or directory."""
import shlex
import subprocess
from pathlib import Path
from typing import Union

from commitcoupling.errors import CommandError
from commitcoupling.git_files import validate_path
from commitcoupling.logging_config import get_logger

logger = get_logger(__name__)


def open_in_code_editor(path: Union[str, Path], editor: str = "code") -> None:
    """
    Open a path in a code editor without waiting for it to exit.

    Args:
        path: File or directory to open
        editor: Editor command, e.g. ``code`` or ``subl -n``

    Raises:
        InvalidPathError: If the path contains control characters
        CommandError: If the editor process cannot be started
    """
    validate_path(path)
    editor_args = shlex.split(editor)
    if not editor_args:
        raise CommandError([editor], None, "empty editor command")
    command = [*editor_args, str(path)]

    try:
        subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        logger.error("Could not start editor %r: %s", editor, e)
        raise CommandError(command, None, str(e)) from e

    logger.debug("Opened %s with %s", path, editor)

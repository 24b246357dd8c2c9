"""Bounded-time pandoc invocation.

This module runs pandoc as a child process for one conversion hop. Every
call is bounded by a timeout; a call that times out is killed and reaped,
and the input is returned prefixed with a manual-review marker. A call that
cannot start or exits non-zero returns the input unchanged.
"""

import logging
import subprocess
from typing import Sequence

from .errors import ConversionError

logger = logging.getLogger(__name__)

MANUAL_REVIEW_MARKER = "<!-- CONVERSION TIMEOUT: REQUIRES MANUAL REVIEW -->\n"

DIALECTS = {'html', 'textile', 'mediawiki'}


class PandocRunner:
    """Runs pandoc between two markup dialects.

    Example:
        >>> runner = PandocRunner()
        >>> runner.convert("<p>Hello</p>", "html", "textile")
        'Hello\\n'
    """

    DEFAULT_TIMEOUT = 60

    def __init__(self, command: Sequence[str] = ("pandoc",), timeout: float = DEFAULT_TIMEOUT):
        """Initialize the runner.

        Args:
            command: Converter executable and leading arguments
            timeout: Seconds a single call may run before it is killed
        """
        self.command = list(command)
        self.timeout = timeout

    def convert(self, content: str, source: str, target: str) -> str:
        """Convert content from one dialect to another.

        Args:
            content: Text in the source dialect
            source: Source dialect name
            target: Target dialect name

        Returns:
            Converted text, the input unchanged if the call failed, or the
            input prefixed with MANUAL_REVIEW_MARKER if the call timed out

        Raises:
            ConversionError: If a dialect is not supported
        """
        for dialect in (source, target):
            if dialect not in DIALECTS:
                raise ConversionError(f"Unsupported dialect: {dialect}")

        args = self.command + ["--from", source, "--to", target]
        try:
            process = subprocess.Popen(
                args,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            logger.error(f"Failed to start pandoc, conversion from {source} to {target} skipped: {e}")
            return content

        try:
            converted, errors = process.communicate(input=content, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.communicate()
            logger.warning(
                f"Pandoc timed out after {self.timeout} seconds "
                f"({source} -> {target}, {len(content)} chars)"
            )
            return MANUAL_REVIEW_MARKER + content

        if process.returncode != 0:
            logger.warning(
                f"Conversion skipped: pandoc failed with exit code {process.returncode}: "
                f"{errors.strip()}"
            )
            return content

        return converted or content

    def is_available(self) -> bool:
        """Check if the converter executable is on the system PATH.

        Returns:
            True if the converter is available, False otherwise
        """
        try:
            result = subprocess.run(
                ["which", self.command[0]],
                capture_output=True,
                timeout=5
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return False

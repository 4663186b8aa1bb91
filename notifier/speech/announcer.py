"""Spoken announcements through the operating system's speech command.

Announcing is fire-and-forget: the speech process is started detached and
never waited on, and a failure to start it is not reported to the caller.
"""

import logging
import platform
import shlex
import shutil
import subprocess
from typing import Protocol

from notifier.errors import AnnounceError

logger = logging.getLogger(__name__)

# Tried in order on non-macOS systems
LINUX_SPEECH_COMMANDS = ["spd-say", "espeak-ng", "espeak"]


class Announcer(Protocol):
    def announce(self, message: str) -> None: ...


def detect_speech_command() -> list[str] | None:
    """Find a speech command for this platform.

    Returns:
        The command argv (without the message), or None if nothing is installed.
    """
    if platform.system() == "Darwin":
        return ["say"] if shutil.which("say") else None

    for name in LINUX_SPEECH_COMMANDS:
        if shutil.which(name):
            return [name]
    return None


class SpeechAnnouncer:
    """Speaks messages by launching a speech command such as `say`."""

    def __init__(self, command: list[str]) -> None:
        """Initialize the SpeechAnnouncer.

        Args:
            command: Command argv; the message is appended as the last argument.
        """
        if not command:
            raise ValueError("Speech command must not be empty")
        self.command = command
        # Launched speech processes not yet reaped
        self.running: list[subprocess.Popen] = []

    def speak(self, message: str) -> subprocess.Popen:
        """Start the speech process.

        Raises:
            AnnounceError: If the command could not be launched.
        """
        self.reap()
        try:
            process = subprocess.Popen(
                [*self.command, message],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise AnnounceError(f"Could not run {self.command[0]}: {e}") from e

        self.running.append(process)
        return process

    def reap(self) -> int:
        """Collect speech processes that have exited.

        Returns:
            Number of processes still running.
        """
        self.running = [process for process in self.running if process.poll() is None]
        return len(self.running)

    def announce(self, message: str) -> None:
        logger.info("Announcing: %s", message)
        try:
            self.speak(message)
        except AnnounceError as e:
            logger.debug("Announcement dropped: %s", e)


class LoggingAnnouncer:
    """Writes announcements to the log when no speech command is available."""

    def announce(self, message: str) -> None:
        logger.warning("REMINDER: %s", message)


def create_announcer(speech_command: str = "") -> Announcer:
    """Build the announcer for this machine.

    Args:
        speech_command: Explicit command line (e.g. "espeak -s 150");
            auto-detected when empty.
    """
    command = shlex.split(speech_command) if speech_command else detect_speech_command()
    if not command:
        logger.warning("No speech command found; reminders will only be logged")
        return LoggingAnnouncer()

    logger.info("Using speech command: %s", " ".join(command))
    return SpeechAnnouncer(command)

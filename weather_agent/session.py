"""Session loop — one conversation, one turn at a time."""
import asyncio
import logging
import os
import stat
import sys
import uuid
from typing import Awaitable, Callable, Optional

from .cancellation import CancelToken, run_cancellable
from .errors import OperationCancelled
from .planner import Planner, TurnResult

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("exit", "quit")
RESET_COMMANDS = ("reset", "clear")

GOODBYE = "Goodbye!"
SEPARATOR = "─" * 60

Reader = Callable[[], Awaitable[Optional[str]]]
Writer = Callable[[str], None]


class AgentSession:
    """Reads utterances, hands them to the planner and writes the answers.

    The reader returns None at end of input. Each turn gets its own
    CancelToken so cancel_current() only aborts the turn in flight.
    """

    def __init__(self, planner: Planner, read_utterance: Reader, write_output: Writer, clear_history: bool = False):
        self.session_id = str(uuid.uuid4())[:8]
        self.planner = planner
        self.read_utterance = read_utterance
        self.write_output = write_output
        self.clear_history = clear_history
        self.processing = False
        self.turns = 0
        self._current: Optional[CancelToken] = None
        self._shutdown = CancelToken()

    @property
    def stopped(self) -> bool:
        return self._shutdown.cancelled

    def cancel_current(self, reason: str = "cancelled by user") -> bool:
        """Cancel the in-flight turn. Returns False if nothing was running."""
        if self._current is None:
            return False
        self._current.cancel(reason)
        return True

    def stop(self):
        """Request cooperative shutdown."""
        self._shutdown.cancel("shutdown")
        self.cancel_current("shutdown")

    def interrupt(self):
        """Ctrl-C: abort the running turn, or stop when idle."""
        if not self.cancel_current("interrupted"):
            self.stop()

    async def handle(self, utterance: str) -> Optional[TurnResult]:
        """Process one utterance. Returns None when the planner was not involved."""
        text = (utterance or "").strip()
        if not text:
            return None

        command = text.lower()
        if command in EXIT_COMMANDS:
            self.write_output(GOODBYE)
            self.stop()
            return None
        if command in RESET_COMMANDS:
            self.planner.reset()
            self.write_output("Conversation cleared.")
            return None

        token = CancelToken()
        self._current = token
        self.processing = True
        logger.info(f"[{self.session_id}] Processing: {text[:100]!r}")
        try:
            result = await self.planner.plan(text, cancel=token, clear_history=self.clear_history)
        except Exception as e:
            logger.error(f"[{self.session_id}] Error processing query: {type(e).__name__}: {e}", exc_info=True)
            result = TurnResult(type="error", text=f"Error processing query: {e}")
        finally:
            self.processing = False
            self._current = None

        self.turns += 1
        self.write_output(result.text)
        return result

    async def run(self):
        logger.info(f"[{self.session_id}] Session started")
        try:
            while not self.stopped:
                try:
                    utterance = await run_cancellable(self.read_utterance(), self._shutdown)
                except OperationCancelled:
                    break
                if utterance is None:
                    logger.info(f"[{self.session_id}] End of input")
                    break
                await self.handle(utterance)
        finally:
            logger.info(f"[{self.session_id}] Session ended after {self.turns} turn(s)")


def _is_stream(fileobj) -> bool:
    """True for ttys, pipes and sockets, which the loop can watch directly."""
    try:
        mode = os.fstat(fileobj.fileno()).st_mode
    except (OSError, ValueError):
        return False
    return stat.S_ISFIFO(mode) or stat.S_ISSOCK(mode) or stat.S_ISCHR(mode)


async def console_reader(prompt: str = "You: ") -> Reader:
    """Build a line reader over stdin.

    Ttys and pipes are read through a StreamReader, so a pending read can be
    cancelled. Redirected regular files are read in the default executor.
    """
    loop = asyncio.get_running_loop()
    stdin = sys.stdin

    if not _is_stream(stdin):
        logger.info("stdin is not a tty or pipe, reading lines in executor")

        async def read_file() -> Optional[str]:
            print(prompt, end="", flush=True)
            line = await loop.run_in_executor(None, stdin.readline)
            return line or None

        return read_file

    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), stdin)

    async def read() -> Optional[str]:
        print(prompt, end="", flush=True)
        line = await reader.readline()
        if not line:
            return None
        return line.decode("utf-8", errors="replace")

    return read


def console_writer(text: str):
    print()
    print(text)
    print(SEPARATOR + "\n", flush=True)

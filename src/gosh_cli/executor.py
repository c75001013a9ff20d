# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
External process execution for GoSh.

Two launch strategies:
- direct: the child inherits the shell's stdin/stdout/stderr and the
  shell blocks until it exits.
- interactive: the child gets a pseudo-terminal as its controlling
  terminal and two relay threads copy bytes stdin -> pty master and
  pty master -> stdout until the child is gone.

Which strategy applies is decided by a plain name lookup of argv[0]
against an injectable set (see ``interactive_commands`` in config).
"""

from __future__ import annotations

import fcntl
import logging
import os
import pty
import select
import signal
import subprocess
import sys
import termios
import threading
import time
import tty
from collections.abc import Iterable
from dataclasses import dataclass

from .errors import ExecError

logger = logging.getLogger(__name__)

# How long to let the output relay drain after the child exits.
DRAIN_TIMEOUT = 1.0


@dataclass(frozen=True)
class ExitStatus:
    """Result of a child that exited on its own."""

    code: int
    duration_ms: int
    interactive: bool = False


def _write_all(fd: int, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]


def _acquire_controlling_tty() -> None:
    """Runs in the child after setsid(): make the pty slave (fd 0) its ctty."""
    try:
        fcntl.ioctl(0, termios.TIOCSCTTY, 0)
    except OSError:
        pass


def _copy_winsize(src_fd: int, dst_fd: int) -> None:
    try:
        size = fcntl.ioctl(src_fd, termios.TIOCGWINSZ, b"\0" * 8)
        fcntl.ioctl(dst_fd, termios.TIOCSWINSZ, size)
    except OSError:
        pass


def _enter_raw_mode(fd: int) -> list | None:
    """Put a terminal fd in raw mode; return the attrs to restore."""
    if not os.isatty(fd):
        return None
    try:
        saved = termios.tcgetattr(fd)
        tty.setraw(fd)
    except termios.error:
        return None
    return saved


def _restore_mode(fd: int, saved: list | None) -> None:
    if saved is None:
        return
    try:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
    except termios.error:
        pass


class ProcessExecutor:
    """Subprocess/PTY implementation of the Executor protocol."""

    def __init__(
        self,
        interactive_commands: Iterable[str] | None = None,
        stdin_fd: int | None = None,
        stdout_fd: int | None = None,
        poll_interval: float = 0.05,
    ):
        """Initialize executor.

        Args:
            interactive_commands: argv[0] names that need a terminal
            stdin_fd: Input stream for children (default: inherit)
            stdout_fd: Output stream for children (default: inherit)
            poll_interval: select() timeout used by the relays, in seconds
        """
        self.interactive_commands: set[str] = set(interactive_commands or ())
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self.poll_interval = poll_interval

    # -----------------------
    # Classification
    # -----------------------

    def is_interactive(self, tokens: list[str]) -> bool:
        if not tokens:
            return False
        return os.path.basename(tokens[0]) in self.interactive_commands

    # -----------------------
    # Public API
    # -----------------------

    def run(self, tokens: list[str]) -> ExitStatus:
        """Launch ``tokens`` and wait for it.

        Raises:
            ExecError: Launch failure, abnormal termination, wait failure
        """
        if not tokens:
            raise ExecError("empty command")
        if self.is_interactive(tokens):
            logger.debug("Launching %s via pty", tokens[0])
            return self.run_interactive(tokens)
        logger.debug("Launching %s directly", tokens[0])
        return self.run_direct(tokens)

    def run_direct(self, tokens: list[str]) -> ExitStatus:
        """Run with the shell's standard streams inherited."""
        start_ts = time.time()

        try:
            proc = subprocess.Popen(
                tokens,
                stdin=self.stdin_fd,
                stdout=self.stdout_fd,
                stderr=None,
            )
        except OSError as e:
            raise self._launch_error(tokens[0], e) from e

        returncode = self._wait(proc, tokens[0])
        duration_ms = int((time.time() - start_ts) * 1000)
        return self._status(tokens[0], returncode, duration_ms)

    def run_interactive(self, tokens: list[str]) -> ExitStatus:
        """Run attached to a pseudo-terminal with relayed I/O."""
        in_fd = self._input_fd()
        out_fd = self._output_fd()

        start_ts = time.time()

        master_fd, slave_fd = pty.openpty()
        _copy_winsize(in_fd, slave_fd)

        try:
            proc = subprocess.Popen(
                tokens,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                start_new_session=True,
                preexec_fn=_acquire_controlling_tty,
            )
        except OSError as e:
            os.close(master_fd)
            raise self._launch_error(tokens[0], e) from e
        finally:
            # The child holds its own copy; ours would keep EIO from
            # ever reaching the output relay.
            os.close(slave_fd)

        stop = threading.Event()
        saved_mode = _enter_raw_mode(in_fd)
        relays = self._start_relays(master_fd, in_fd, out_fd, stop)
        try:
            returncode = self._wait(proc, tokens[0])
        finally:
            _restore_mode(in_fd, saved_mode)
            self._stop_relays(relays, stop)
            os.close(master_fd)

        duration_ms = int((time.time() - start_ts) * 1000)
        return self._status(
            tokens[0], returncode, duration_ms, interactive=True
        )

    # -----------------------
    # Relays
    # -----------------------

    def _start_relays(
        self, master_fd: int, in_fd: int, out_fd: int,
        stop: threading.Event,
    ) -> list[threading.Thread]:
        t_out = threading.Thread(
            target=self._relay_output, args=(master_fd, out_fd, stop),
            name="gosh-pty-out", daemon=True,
        )
        t_in = threading.Thread(
            target=self._relay_input, args=(in_fd, master_fd, stop),
            name="gosh-pty-in", daemon=True,
        )
        t_out.start()
        t_in.start()
        return [t_out, t_in]

    def _stop_relays(
        self, relays: list[threading.Thread], stop: threading.Event
    ) -> None:
        t_out = relays[0]
        # Let buffered child output reach the terminal first
        t_out.join(timeout=DRAIN_TIMEOUT)
        stop.set()
        for t in relays:
            t.join(timeout=DRAIN_TIMEOUT)
            if t.is_alive():
                logger.warning("Relay thread %s did not stop", t.name)

    def _relay_output(
        self, master_fd: int, out_fd: int, stop: threading.Event
    ) -> None:
        """pty master -> shell stdout. Ends on EOF/EIO and stops both relays."""
        try:
            while not stop.is_set():
                r, _, _ = select.select([master_fd], [], [], self.poll_interval)
                if not r:
                    continue
                try:
                    data = os.read(master_fd, 4096)
                except OSError:
                    # EIO: every slave fd is closed
                    break
                if not data:
                    break
                _write_all(out_fd, data)
        except OSError as e:
            logger.debug("Output relay stopped: %s", e)
        finally:
            stop.set()

    def _relay_input(
        self, in_fd: int, master_fd: int, stop: threading.Event
    ) -> None:
        """shell stdin -> pty master. Ends when stopped or stdin closes."""
        while not stop.is_set():
            try:
                r, _, _ = select.select([in_fd], [], [], self.poll_interval)
            except (OSError, ValueError):
                return
            if not r:
                continue
            try:
                data = os.read(in_fd, 1024)
            except OSError:
                return
            if not data:
                return
            try:
                _write_all(master_fd, data)
            except OSError:
                stop.set()
                return

    # -----------------------
    # Helpers
    # -----------------------

    def _input_fd(self) -> int:
        if self.stdin_fd is not None:
            return self.stdin_fd
        return sys.__stdin__.fileno()

    def _output_fd(self) -> int:
        if self.stdout_fd is not None:
            return self.stdout_fd
        return sys.__stdout__.fileno()

    def _wait(self, proc: subprocess.Popen, name: str) -> int:
        """Block until the child exits.

        Ctrl+C reaches the child through the terminal's foreground process
        group; here it only interrupts the wait, which is resumed.
        """
        while True:
            try:
                return proc.wait()
            except KeyboardInterrupt:
                continue
            except OSError as e:
                raise ExecError(f"{name}: wait failed: {e}") from e

    def _status(
        self, name: str, returncode: int, duration_ms: int,
        interactive: bool = False,
    ) -> ExitStatus:
        if returncode < 0:
            try:
                sig_name = signal.Signals(-returncode).name
            except ValueError:
                sig_name = f"signal {-returncode}"
            raise ExecError(f"{name}: terminated by {sig_name}")

        logger.debug("%s exited with %d", name, returncode)
        return ExitStatus(
            code=returncode,
            duration_ms=duration_ms,
            interactive=interactive,
        )

    @staticmethod
    def _launch_error(name: str, error: OSError) -> ExecError:
        if isinstance(error, FileNotFoundError):
            return ExecError(f"{name}: command not found")
        if isinstance(error, PermissionError):
            return ExecError(f"{name}: permission denied")
        return ExecError(f"{name}: {error.strerror or error}")

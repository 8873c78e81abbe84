#!/usr/bin/env python3
"""
Command pattern implementation for fan control actions.

Defines the ipmitool commands the monitor sends and the actuator
that issues them.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

from .executor import CommandExecutor, ExecutorError
from .retry import RetryExhausted, RetryPolicy, with_retry


class ActuationError(Exception):
    """A mode-switching command failed on every retry.

    The monitor can no longer tell which mode the fans are in, so this
    is fatal to the poll loop.
    """


class Command(ABC):
    """Base command interface for the Command pattern."""

    @abstractmethod
    def render(self) -> str:
        """Return the ipmitool arguments for this command."""
        pass


class QueryTemperatureCommand(Command):
    """Read every temperature sensor record."""

    def render(self) -> str:
        return "sdr type temperature"


class EnableAutomaticCommand(Command):
    """Hand fan control back to the vendor's thermal curve."""

    def render(self) -> str:
        return "raw 0x30 0x30 0x01 0x01"


class DisableAutomaticCommand(Command):
    """Take fan control away from the vendor's thermal curve."""

    def render(self) -> str:
        return "raw 0x30 0x30 0x01 0x00"


class SetFanPercentCommand(Command):
    """Set every fan to a static duty cycle."""

    TEMPLATE = "raw 0x30 0x30 0x02 0xff 0x{0}"

    def __init__(self, percent: int):
        """
        Initialize the command.

        Args:
            percent: Fan speed, 0-100
        """
        if not 0 <= percent <= 100:
            raise ValueError(f"Fan percent must be within 0-100, got {percent}")
        self.percent = percent

    def render(self) -> str:
        return self.TEMPLATE.format(format(self.percent, "02X"))


class Actuator:
    """
    Issues mode-switching commands through the retrying invoker.

    Every operation either completes or raises ActuationError; the
    actuator never decides to stop the monitor itself.
    """

    def __init__(self, executor: CommandExecutor, policy: RetryPolicy,
                 stop_event: Optional[threading.Event] = None):
        self.executor = executor
        self.policy = policy
        self.stop_event = stop_event or threading.Event()

    def enable_automatic(self) -> None:
        """Hand fan control to the automatic curve."""
        self._send(EnableAutomaticCommand())

    def disable_automatic(self) -> None:
        """Turn off automatic fan control."""
        self._send(DisableAutomaticCommand())

    def set_manual_fan_percent(self, percent: int) -> None:
        """Pin every fan to a static speed."""
        self._send(SetFanPercentCommand(percent))

    def _send(self, command: Command) -> None:
        rendered = command.render()
        try:
            with_retry(
                lambda: self.executor.execute(rendered),
                self.policy,
                retry_on=(ExecutorError,),
                stop_event=self.stop_event,
                description=f"'{rendered}'",
            )
        except RetryExhausted as exc:
            raise ActuationError(str(exc)) from exc
        logging.debug("Sent %s", rendered)

#!/usr/bin/env python3
"""
Sensor reading module.

Queries the management controller for temperature records and reduces
them to a single reading.
"""

import logging
import re
import threading
from typing import List, Optional

from .commands import QueryTemperatureCommand
from .config import ThresholdConfig
from .executor import CommandExecutor, ExecutorError
from .retry import RetryExhausted, RetryPolicy, with_retry


def extract_readings(text: str, pattern: str) -> List[Optional[int]]:
    """
    Pull every temperature out of raw query output.

    Each match contributes its last capture group (or the whole match if
    the pattern has no groups). A group that does not parse as an
    integer is returned as None.

    For the default pattern and output like:
        Temp             | 0Eh | ok  |  3.1 | 30 degrees C
        Temp             | 0Fh | ok  |  3.2 | 31 degrees C
    this returns [30, 31].
    """
    readings = []
    for match in re.finditer(pattern, text, re.MULTILINE):
        value = match.group(match.re.groups) if match.re.groups else match.group(0)
        try:
            readings.append(int(value))
        except (TypeError, ValueError):
            readings.append(None)
    return readings


class TemperatureSampler:
    """
    Reads the chassis temperature through ipmitool.

    Retries while the query fails or comes back blank, then takes the
    maximum of all readings matched by the configured pattern.
    """

    def __init__(self, executor: CommandExecutor, config: ThresholdConfig,
                 policy: RetryPolicy = None, stop_event: Optional[threading.Event] = None):
        """Initialize the sampler with an executor and thresholds."""
        self.executor = executor
        self.config = config
        self.policy = policy or RetryPolicy.from_thresholds(config)
        self.stop_event = stop_event or threading.Event()
        self.command = QueryTemperatureCommand().render()

    def sample(self) -> Optional[int]:
        """
        Take one reading.

        Returns:
            The hottest matched temperature in °C, or None if the query
            kept failing, nothing matched, or no match parsed.
        """
        try:
            output = with_retry(
                lambda: self.executor.execute(self.command),
                self.policy,
                retry_on=(ExecutorError,),
                retry_if=lambda text: not text or not text.strip(),
                stop_event=self.stop_event,
                description="temperature query",
            )
        except RetryExhausted as exc:
            logging.error("Unable to read temperature: %s", exc)
            return None

        readings = extract_readings(output, self.config.temp_regex)
        if not readings:
            logging.error("No temperature matched %r in ipmitool output", self.config.temp_regex)
            return None
        if all(reading is None for reading in readings):
            logging.error("No matched temperature parsed as an integer: %d match(es)", len(readings))
            return None

        logging.debug("Matched readings: %s", readings)
        # Unparsable matches count as 0 alongside the ones that did parse.
        return max(0 if reading is None else reading for reading in readings)

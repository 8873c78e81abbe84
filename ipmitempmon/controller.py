#!/usr/bin/env python3
"""
Fan control logic module.

Decides between the vendor's automatic fan curve and a static manual
fan speed, with hysteresis so the mode does not flap.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .commands import Actuator
from .config import ThresholdConfig


class OperatingMode(Enum):
    AUTOMATIC = "Automatic"
    MANUAL = "Manual"
    UNKNOWN = "Unknown"


class Decision(Enum):
    """Outcome of one evaluation."""
    NONE = "none"            # nothing sent
    AUTOMATIC = "automatic"  # switched to automatic
    WAITING = "waiting"      # below threshold, delay not yet elapsed
    MANUAL = "manual"        # manual command (re)sent


@dataclass
class HysteresisState:
    """Everything the engine carries between poll cycles."""
    below_threshold_since: Optional[float] = None
    current_mode: OperatingMode = OperatingMode.UNKNOWN
    remaining_manual_attempts: int = 0


class ModeDecisionEngine:
    """
    Hysteresis state machine for fan control mode.

    - Hot (latest reading or rolling average above max): switch to
      automatic immediately and restart the cool-down timer.
    - Not hot: once temperature has stayed below max continuously for
      back_to_manual_delay seconds, disable automatic control and set the
      manual fan speed. The manual command is sent again on later cool
      cycles until the reattempt budget runs out, since the controller
      offers no way to read the mode back.
    """

    def __init__(self, config: ThresholdConfig, actuator: Actuator,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize the engine with thresholds, an actuator and a clock."""
        self.config = config
        self.actuator = actuator
        self.clock = clock
        self.state = HysteresisState()

    @property
    def current_mode(self) -> OperatingMode:
        return self.state.current_mode

    def start(self) -> None:
        """
        Startup transition.

        Forces automatic mode whatever the state says, so the fans are
        safe before the first reading is evaluated.
        """
        logging.info("Monitor starting. Setting fan control to automatic to start.")
        self.state.current_mode = OperatingMode.AUTOMATIC
        self.actuator.enable_automatic()

    def is_hot(self, reading: int, average: float) -> bool:
        return reading > self.config.max_temp_c or average > self.config.max_temp_c

    def evaluate(self, reading: int, average: float, now: float = None) -> Decision:
        """
        Advance the state machine by one successful sample.

        Raises:
            RuntimeError: start() has not run yet.
            ActuationError: a command failed on every retry.
        """
        if self.state.current_mode is OperatingMode.UNKNOWN:
            raise RuntimeError("start() must run before the first evaluation")
        if now is None:
            now = self.clock()

        if self.is_hot(reading, average):
            self.state.below_threshold_since = None
            if self.state.current_mode is OperatingMode.AUTOMATIC:
                return Decision.NONE
            self._switch_to_automatic()
            return Decision.AUTOMATIC

        # Only switch back once both the reading and the average are below max.
        if self.state.below_threshold_since is None:
            self.state.below_threshold_since = now
            self.state.remaining_manual_attempts = self.config.manual_switch_reattempts

        if (self.state.current_mode is OperatingMode.MANUAL
                and self.state.remaining_manual_attempts == 0):
            return Decision.NONE

        return self._switch_to_manual(now)

    def _switch_to_automatic(self) -> None:
        logging.info("Attempting switch to automatic mode.")
        self.actuator.enable_automatic()
        self.state.current_mode = OperatingMode.AUTOMATIC

    def _switch_to_manual(self, now: float) -> Decision:
        elapsed = now - self.state.below_threshold_since
        if elapsed < self.config.back_to_manual_delay:
            logging.warning(
                "Manual threshold not crossed yet. Staying in %s mode for at least another %d seconds.",
                self.state.current_mode.value,
                int(self.config.back_to_manual_delay - elapsed),
            )
            return Decision.WAITING

        logging.info("Attempting switch to manual mode (%d%%).", self.config.manual_fan_percent)
        self.actuator.disable_automatic()
        self.actuator.set_manual_fan_percent(self.config.manual_fan_percent)
        self.state.current_mode = OperatingMode.MANUAL
        if self.state.remaining_manual_attempts > 0:
            self.state.remaining_manual_attempts -= 1
        return Decision.MANUAL

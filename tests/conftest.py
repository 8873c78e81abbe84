import threading
from pathlib import Path
from typing import List

import pytest

from ipmitempmon.commands import Actuator
from ipmitempmon.config import ThresholdConfig
from ipmitempmon.executor import CommandExecutor, ExecutorError
from ipmitempmon.retry import RetryPolicy

FIXTURES = Path(__file__).parent / "fixtures"

ENABLE_AUTO = "raw 0x30 0x30 0x01 0x01"
DISABLE_AUTO = "raw 0x30 0x30 0x01 0x00"
QUERY = "sdr type temperature"


class RecordingExecutor(CommandExecutor):
    """Records every command; answers from a script of outputs/exceptions."""

    def __init__(self, responses=None, default=""):
        self.commands: List[str] = []
        self.responses = list(responses or [])
        self.default = default

    def execute(self, command: str) -> str:
        self.commands.append(command)
        if self.responses:
            response = self.responses.pop(0)
        else:
            response = self.default
        if isinstance(response, Exception):
            raise response
        return response


class FailingExecutor(CommandExecutor):
    def __init__(self):
        self.calls = 0

    def execute(self, command: str) -> str:
        self.calls += 1
        raise ExecutorError("BMC unreachable")


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def no_wait_policy() -> RetryPolicy:
    return RetryPolicy(retry_count=3, initial_delay=0.0, backoff_factor=2.0)


@pytest.fixture
def thresholds() -> ThresholdConfig:
    return ThresholdConfig(
        max_temp_c=50,
        back_to_manual_delay=60,
        manual_fan_percent=30,
        manual_switch_reattempts=2,
        poll_interval=20,
        window_size=3,
        retry_count=3,
        retry_initial_delay_ms=0,
        retry_backoff_factor=2.0,
    )


@pytest.fixture
def recorder() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def actuator(recorder, no_wait_policy) -> Actuator:
    return Actuator(recorder, no_wait_policy, threading.Event())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sdr_output() -> str:
    return (FIXTURES / "sdr_temperature.txt").read_text()

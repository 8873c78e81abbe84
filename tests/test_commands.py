import threading

import pytest

from conftest import DISABLE_AUTO, ENABLE_AUTO, FailingExecutor, RecordingExecutor
from ipmitempmon.commands import (
    ActuationError,
    Actuator,
    DisableAutomaticCommand,
    EnableAutomaticCommand,
    QueryTemperatureCommand,
    SetFanPercentCommand,
)
from ipmitempmon.executor import ExecutorError
from ipmitempmon.retry import RetryPolicy


class TestCommands:
    def test_fixed_commands(self):
        assert QueryTemperatureCommand().render() == "sdr type temperature"
        assert EnableAutomaticCommand().render() == ENABLE_AUTO
        assert DisableAutomaticCommand().render() == DISABLE_AUTO

    @pytest.mark.parametrize("percent,expected", [
        (30, "raw 0x30 0x30 0x02 0xff 0x1E"),
        (5, "raw 0x30 0x30 0x02 0xff 0x05"),
        (0, "raw 0x30 0x30 0x02 0xff 0x00"),
        (100, "raw 0x30 0x30 0x02 0xff 0x64"),
    ])
    def test_fan_percent_is_two_digit_hex(self, percent, expected):
        assert SetFanPercentCommand(percent).render() == expected

    @pytest.mark.parametrize("percent", [-1, 101])
    def test_fan_percent_out_of_range(self, percent):
        with pytest.raises(ValueError):
            SetFanPercentCommand(percent)


class TestActuator:
    def test_each_operation_sends_one_command(self, actuator, recorder):
        actuator.enable_automatic()
        actuator.disable_automatic()
        actuator.set_manual_fan_percent(30)
        assert recorder.commands == [ENABLE_AUTO, DISABLE_AUTO, "raw 0x30 0x30 0x02 0xff 0x1E"]

    def test_retries_thrown_failures(self, no_wait_policy):
        executor = RecordingExecutor(responses=[ExecutorError("timeout"), ExecutorError("timeout"), ""])
        Actuator(executor, no_wait_policy).enable_automatic()
        assert executor.commands == [ENABLE_AUTO] * 3

    def test_empty_output_is_not_a_failure(self, no_wait_policy):
        executor = RecordingExecutor(default="")
        Actuator(executor, no_wait_policy).disable_automatic()
        assert executor.commands == [DISABLE_AUTO]

    def test_exhaustion_is_actuation_error(self):
        executor = FailingExecutor()
        actuator = Actuator(executor, RetryPolicy(retry_count=2, initial_delay=0.0), threading.Event())
        with pytest.raises(ActuationError):
            actuator.enable_automatic()
        assert executor.calls == 3

from conftest import QUERY, RecordingExecutor
from ipmitempmon.config import DEFAULT_TEMP_REGEX, ThresholdConfig
from ipmitempmon.executor import ExecutorError
from ipmitempmon.retry import RetryPolicy
from ipmitempmon.sensors import TemperatureSampler, extract_readings


class TestExtractReadings:
    def test_default_pattern_on_fixture(self, sdr_output):
        assert extract_readings(sdr_output, DEFAULT_TEMP_REGEX) == [30, 31]

    def test_no_matches(self):
        assert extract_readings("Inlet Temp | 04h | ok | 7.1 | 20 degrees C", DEFAULT_TEMP_REGEX) == []

    def test_unparsable_group_is_none(self):
        text = "cpu=abc\ncpu=42\n"
        assert extract_readings(text, r"cpu=(\w+)") == [None, 42]

    def test_pattern_without_groups_uses_whole_match(self):
        assert extract_readings("a 12 b 40", r"\d+") == [12, 40]

    def test_last_group_wins(self):
        text = "CPU1 | 45 degrees C"
        assert extract_readings(text, r"CPU(\d) \| (\d+)") == [45]


class TestTemperatureSampler:
    def make(self, executor, thresholds, retries=2):
        policy = RetryPolicy(retry_count=retries, initial_delay=0.0)
        return TemperatureSampler(executor, thresholds, policy)

    def test_returns_maximum(self, sdr_output, thresholds):
        executor = RecordingExecutor(default=sdr_output)
        assert self.make(executor, thresholds).sample() == 31
        assert executor.commands == [QUERY]

    def test_retries_blank_output(self, sdr_output, thresholds):
        executor = RecordingExecutor(responses=["", "   \n"], default=sdr_output)
        assert self.make(executor, thresholds).sample() == 31
        assert len(executor.commands) == 3

    def test_retries_executor_errors(self, sdr_output, thresholds):
        executor = RecordingExecutor(responses=[ExecutorError("no route")], default=sdr_output)
        assert self.make(executor, thresholds).sample() == 31

    def test_exhausted_retries_fail_sample(self, thresholds):
        executor = RecordingExecutor(default="")
        assert self.make(executor, thresholds, retries=2).sample() is None
        assert len(executor.commands) == 3

    def test_no_match_fails_sample(self, thresholds):
        executor = RecordingExecutor(default="Inlet Temp | 04h | ok | 7.1 | 20 degrees C\n")
        assert self.make(executor, thresholds).sample() is None
        assert len(executor.commands) == 1

    def test_custom_pattern(self):
        config = ThresholdConfig(temp_regex=r"^CPU\d Temp\s+\|\s+(\d+)")
        executor = RecordingExecutor(default="CPU1 Temp | 44\nCPU2 Temp | 47\nSystem Temp | 60\n")
        assert self.make(executor, config).sample() == 47

    def test_unparsable_match_counts_as_zero(self):
        config = ThresholdConfig(temp_regex=r"cpu=(\S+)")
        executor = RecordingExecutor(default="cpu=ERR\ncpu=-5\n")
        assert self.make(executor, config).sample() == 0

    def test_all_matches_unparsable_fails_sample(self):
        config = ThresholdConfig(temp_regex=r"cpu=(\w+)")
        executor = RecordingExecutor(default="cpu=ERR\ncpu=na\n")
        assert self.make(executor, config).sample() is None
        assert len(executor.commands) == 1

"""
IPMI Temperature Monitor Package.

Switches a server's fans between the vendor's automatic thermal curve
and a quiet static speed, based on temperatures read over IPMI.
"""

__version__ = "0.1.0"

# Core components
from .config import ConfigManager, ThresholdConfig, IpmiConfig
from .retry import RetryPolicy, with_retry, RetryExhausted, Cancelled
from .executor import CommandExecutor, IpmiToolExecutor, FixtureExecutor, ExecutorError
from .sensors import TemperatureSampler
from .analyzer import RollingAggregator
from .controller import ModeDecisionEngine, OperatingMode, Decision
from .monitor import PollLoop

# Commands
from .commands import Actuator, ActuationError

__all__ = [
    "ConfigManager", "ThresholdConfig", "IpmiConfig",
    "RetryPolicy", "with_retry", "RetryExhausted", "Cancelled",
    "CommandExecutor", "IpmiToolExecutor", "FixtureExecutor", "ExecutorError",
    "TemperatureSampler",
    "RollingAggregator",
    "ModeDecisionEngine", "OperatingMode", "Decision",
    "PollLoop",
    "Actuator", "ActuationError",
    "__version__"
]

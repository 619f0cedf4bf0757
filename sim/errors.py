class SimulationError(Exception):
    """Base class for errors raised by the simulator."""


class ConfigurationError(SimulationError, ValueError):
    """Invalid rule set or experiment settings. Raised before any trial runs."""


class EmptyAggregateError(SimulationError):
    """Statistics were requested from an aggregator that has seen no trials."""


class StrategyContractViolation(SimulationError):
    """A strategy returned an action that is not allowed in the current state."""
